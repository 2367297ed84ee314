from __future__ import annotations

import sqlite3
from contextlib import closing
from pathlib import Path
from typing import Iterator

import pytest
from typer.testing import CliRunner

from cli.app import app
from models.schemas import ProvisionSummary
from services.provisioner import ProvisionError
from settings import get_settings


class StubProvisioner:
    def __init__(self, error: ProvisionError | None = None) -> None:
        self.error = error
        self.configs: list = []

    def provision(self, config) -> ProvisionSummary:
        self.configs.append(config)
        if self.error is not None:
            raise self.error
        return ProvisionSummary(
            database_path="stub.db",
            microcontroller_count=config.microcontroller_count,
            sensor_count=config.microcontroller_count * config.sensors_per_microcontroller,
            elapsed_ms=5,
        )


@pytest.fixture()
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture(autouse=True)
def _isolate(monkeypatch, tmp_path) -> Iterator[None]:
    monkeypatch.setattr("cli.app.configure_logging", lambda level=None: None)
    monkeypatch.delenv("WOMSCP_CONFIG_PATH", raising=False)
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


def _install_stub(monkeypatch, stub: StubProvisioner) -> None:
    monkeypatch.setattr("cli.app.build_default_provisioner", lambda: stub)


def test_init_provisions_database_from_config(runner: CliRunner, tmp_path: Path) -> None:
    db_path = tmp_path / "cli.db"
    config_path = tmp_path / "server.toml"
    config_path.write_text(
        f'database = "sqlite:{db_path}"\n'
        "microcontroller_count = 2\n"
        "sensors_per_microcontroller = 3\n"
    )

    result = runner.invoke(app, ["--config", str(config_path), "init"])

    assert result.exit_code == 0, result.output
    assert "Server initialized." in result.stdout
    assert "sensors: 6" in result.stdout
    with closing(sqlite3.connect(db_path)) as conn:
        assert conn.execute("SELECT COUNT(*) FROM Sensors").fetchone() == (6,)


def test_init_uses_defaults_without_config(monkeypatch, runner: CliRunner) -> None:
    stub = StubProvisioner()
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["init"])

    assert result.exit_code == 0, result.output
    assert stub.configs[0].database == "sqlite:w_orchid.db"
    assert "microcontrollers: 1" in result.stdout


def test_init_aborts_on_config_error(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    stub = StubProvisioner()
    _install_stub(monkeypatch, stub)
    config_path = tmp_path / "broken.toml"
    config_path.write_text("address = \n")

    result = runner.invoke(app, ["--config", str(config_path), "init"])

    assert result.exit_code == 1
    assert "Invalid config file" in result.output
    assert stub.configs == []


def test_init_reports_provision_error(monkeypatch, runner: CliRunner) -> None:
    stub = StubProvisioner(
        error=ProvisionError("Failed to insert into Sensors", stage="seed", m_id=0, s_id=1)
    )
    _install_stub(monkeypatch, stub)

    result = runner.invoke(app, ["init"])

    assert result.exit_code == 1
    assert "Provisioning failed (seed)" in result.output
    assert "Server initialized." not in result.output


def test_config_path_from_environment(monkeypatch, runner: CliRunner, tmp_path: Path) -> None:
    config_path = tmp_path / "env.toml"
    config_path.write_text('address = "0.0.0.0:7000"\n')
    monkeypatch.setenv("WOMSCP_CONFIG_PATH", str(config_path))
    get_settings.cache_clear()

    result = runner.invoke(app, ["show-config"])

    assert result.exit_code == 0, result.output
    assert "address: 0.0.0.0:7000" in result.stdout


def test_show_config_lists_effective_values(runner: CliRunner, tmp_path: Path) -> None:
    (tmp_path / "config.toml").write_text("microcontroller_count = 9\naddress = 1\n")

    result = runner.invoke(app, ["show-config"])

    assert result.exit_code == 0, result.output
    assert "microcontroller_count: 9" in result.stdout
    assert "address: 127.0.0.1:3000" in result.stdout
    assert "sensors_per_microcontroller: 2" in result.stdout
