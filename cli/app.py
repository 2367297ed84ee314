from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from cli.render import render_config, render_error, render_summary
from logging_config import configure_logging
from models.schemas import ServerConfig
from services.config_resolver import ConfigError, resolve
from services.provisioner import ProvisionError, build_default_provisioner
from settings import DEFAULT_CONFIG_PATH, get_settings

logger = logging.getLogger(__name__)


@dataclass
class CLIState:
    config_path: Optional[Path]


app = typer.Typer(
    name="womscp-server",
    help="Server that handles the WOMSCP.",
    no_args_is_help=True,
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _get_state(ctx: typer.Context) -> CLIState:
    state = ctx.obj
    if not isinstance(state, CLIState):
        raise typer.Exit(code=1)
    return state


def _resolve_or_exit(state: CLIState) -> ServerConfig:
    try:
        return resolve(state.config_path)
    except ConfigError as exc:
        logger.error("Configuration rejected", extra={"config_path": state.config_path})
        render_error(str(exc))
        raise typer.Exit(code=1) from exc


@app.callback()
def main(
    ctx: typer.Context,
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        metavar="FILE",
        help="Sets a custom config file (defaults to WOMSCP_CONFIG_PATH env or config.toml).",
    ),
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        help="Logging level (defaults to LOG_LEVEL env or INFO).",
    ),
) -> None:
    """Entry point for the CLI."""
    configure_logging(log_level)
    if config is None:
        settings = get_settings()
        if settings.config_path != DEFAULT_CONFIG_PATH:
            config = Path(settings.config_path)
    ctx.obj = CLIState(config_path=config)


@app.command("init")
def init_command(ctx: typer.Context) -> None:
    """Initializes the server: create the schema and seed the fleet."""
    state = _get_state(ctx)
    config = _resolve_or_exit(state)
    typer.echo(
        f"Provisioning {config.microcontroller_count} microcontroller(s) with "
        f"{config.sensors_per_microcontroller} sensor(s) each into {config.database} ..."
    )

    provisioner = build_default_provisioner()
    try:
        summary = provisioner.provision(config)
    except ProvisionError as exc:
        logger.error(
            "Provisioning failed",
            extra={"stage": exc.stage, "m_id": exc.m_id, "s_id": exc.s_id},
        )
        render_error(f"Provisioning failed ({exc.stage}): {exc}")
        raise typer.Exit(code=1) from exc

    typer.secho("Server initialized.", fg=typer.colors.GREEN)
    typer.echo()
    render_summary(summary)


@app.command("show-config")
def show_config_command(ctx: typer.Context) -> None:
    """Print the effective configuration after defaults are applied."""
    state = _get_state(ctx)
    render_config(_resolve_or_exit(state))
