import os
import sys
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest
from click.testing import CliRunner

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pico import main as pico_main
from pico.config.provider import Config
from pico.errors import ActorCrashed, AuthMethodError


@pytest.fixture
def cli_runner():
    return CliRunner()


def test_invalid_duration_is_usage_error(cli_runner):
    """Test that an unparseable interval is rejected before starting"""
    result = cli_runner.invoke(pico_main.cli, ["run", "https://x/t.git", "--check-interval", "soon"])

    assert result.exit_code == 2
    assert "invalid duration" in result.output


@pytest.mark.parametrize("interval", ["inf", "1e20"])
def test_unbounded_duration_is_usage_error(cli_runner, interval):
    """Test that an interval too large for a timedelta is rejected before starting"""
    result = cli_runner.invoke(pico_main.cli, ["run", "https://x/t.git", "--check-interval", interval])

    assert result.exit_code == 2
    assert "invalid duration" in result.output


def test_vault_address_without_token(cli_runner):
    """Test that configuration errors surface as usage errors"""
    with patch.object(pico_main.log_config, "dictConfig"):
        result = cli_runner.invoke(
            pico_main.cli,
            ["run", "https://x/t.git", "--vault-addr", "http://vault:8200"],
            env={"VAULT_TOKEN": ""},
        )

    assert result.exit_code == 2
    assert "vault token" in result.output


def test_options_from_environment(cli_runner):
    """Test that every option can be set through its environment variable"""
    captured = {}

    async def fake_serve(config):
        captured["config"] = config
        return 0

    env = {
        "TARGET": "https://git.example.com/t.git",
        "HOSTNAME": "web-7",
        "CHECK_INTERVAL": "10s",
        "DIRECTORY": "/var/lib/pico",
        "PASS_ENV": "true",
        "VAULT_ADDR": "http://vault:8200",
        "VAULT_TOKEN": "s.token",
        "VAULT_PATH": "/kv/agents",
        "VAULT_RENEW_INTERVAL": "12h",
        "BUS_CAPACITY": "5",
    }
    with patch.object(pico_main, "serve", fake_serve), patch.object(pico_main.log_config, "dictConfig"):
        result = cli_runner.invoke(pico_main.cli, ["run"], env=env)

    assert result.exit_code == 0, result.output
    config = captured["config"]
    assert config.target.url == "https://git.example.com/t.git"
    assert config.hostname == "web-7"
    assert config.check_interval == timedelta(seconds=10)
    assert config.directory == "/var/lib/pico"
    assert config.pass_environment is True
    assert config.vault_renewal == timedelta(hours=12)
    assert config.vault_path == "/kv/agents"
    assert config.bus_capacity == 5


@pytest.mark.asyncio
async def test_serve_exit_code_on_crash(make_config):
    """Test that a fatal actor error exits with status 1"""
    app = AsyncMock()
    app.start.side_effect = ActorCrashed("git watcher crashed: boom")

    with patch.object(pico_main.App, "initialise", AsyncMock(return_value=app)):
        assert await pico_main.serve(make_config()) == 1
    app.close.assert_awaited_once()


@pytest.mark.asyncio
async def test_serve_exit_code_on_startup_error(make_config):
    """Test that a startup failure exits with status 1"""
    initialise = AsyncMock(side_effect=AuthMethodError("SSH_AUTH_SOCK is not set"))

    with patch.object(pico_main.App, "initialise", initialise):
        assert await pico_main.serve(make_config()) == 1


@pytest.mark.asyncio
async def test_serve_exit_code_on_cancel(make_config):
    """Test that a shutdown signal exits cleanly"""
    app = AsyncMock()
    app.start.side_effect = pico_main.asyncio.CancelledError()

    with patch.object(pico_main.App, "initialise", AsyncMock(return_value=app)):
        assert await pico_main.serve(make_config()) == 0
    app.close.assert_awaited_once()


def test_config_type_is_frozen(make_config):
    """Test that configuration cannot change after startup"""
    config: Config = make_config()

    with pytest.raises(Exception):
        config.hostname = "other"
