from __future__ import annotations

from typing import Any, Iterable

import typer

from models.schemas import ProvisionSummary, ServerConfig


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def render_config(config: ServerConfig) -> None:
    echo_heading("Server Configuration")
    echo_key_values(config.model_dump().items())


def render_summary(summary: ProvisionSummary) -> None:
    echo_heading("Provisioning Result")
    echo_key_values(
        [
            ("database", summary.database_path),
            ("microcontrollers", summary.microcontroller_count),
            ("sensors", summary.sensor_count),
            ("elapsed_ms", summary.elapsed_ms),
        ]
    )


def render_error(message: str) -> None:
    typer.secho(message, fg=typer.colors.RED, err=True)
