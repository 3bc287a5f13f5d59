#!/usr/bin/env python3
"""
Pico - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration from flags and environment variables
2. Configures logging
3. Initializes the app and runs it until a fatal error or a signal

All business logic is in the modules, following black box principles.
"""

import asyncio
import logging
import logging.config as log_config
import signal
import socket
import sys
from datetime import timedelta

import click
from dotenv import load_dotenv

from .config.provider import Config, Repo, parse_duration
from .errors import PicoError
from .logging_config import get_logging_config
from .service import App

logger = logging.getLogger("pico.main")


class DurationType(click.ParamType):
    """Click parameter for Go-style duration strings."""

    name = "duration"

    def convert(self, value, param, ctx) -> timedelta:
        if isinstance(value, timedelta):
            return value
        try:
            return parse_duration(value)
        except ValueError as e:
            self.fail(str(e), param, ctx)


DURATION = DurationType()


async def serve(config: Config) -> int:
    """Run the agent until it fails or is interrupted; returns the exit code."""
    loop = asyncio.get_running_loop()
    current = asyncio.current_task()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, current.cancel)

    try:
        app = await App.initialise(config)
    except asyncio.CancelledError:
        return 0
    except PicoError as e:
        logger.error(f"Failed to initialise: {e}")
        return 1

    try:
        await app.start()
    except asyncio.CancelledError:
        logger.info("Shutting down on signal")
        return 0
    except PicoError as e:
        logger.error(f"Fatal error: {e}")
        return 1
    finally:
        await app.close()

    logger.info("All actors finished")
    return 0


@click.group()
def cli():
    """Pico - GitOps reconciliation agent."""


@cli.command()
@click.argument("target", envvar="TARGET")
@click.option("--git-username", envvar="GIT_USERNAME", default=None, help="Username for the target repository")
@click.option("--git-password", envvar="GIT_PASSWORD", default=None, help="Password for the target repository")
@click.option("--hostname", envvar="HOSTNAME", default=socket.gethostname, help="Identity used to scope targets")
@click.option("--ssh", envvar="SSH", is_flag=True, default=False, help="Authenticate with the running ssh-agent")
@click.option("--directory", envvar="DIRECTORY", default="./cache/", show_default=True, help="Working directory")
@click.option("--pass-env", "pass_env", envvar="PASS_ENV", is_flag=True, default=False, help="Pass host environment to tasks")
@click.option("--check-interval", envvar="CHECK_INTERVAL", type=DURATION, default="1m", show_default=True)
@click.option("--vault-addr", envvar="VAULT_ADDR", default=None, help="Vault server address")
@click.option("--vault-token", envvar="VAULT_TOKEN", default=None, help="Vault token")
@click.option("--vault-path", envvar="VAULT_PATH", default="/secret", show_default=True, help="KV engine and base path")
@click.option("--vault-renew-interval", envvar="VAULT_RENEW_INTERVAL", type=DURATION, default="24h", show_default=True)
@click.option("--vault-config-path", envvar="VAULT_CONFIG_PATH", default="pico", show_default=True, help="Path of agent secrets")
@click.option("--bus-capacity", envvar="BUS_CAPACITY", type=click.IntRange(min=1), default=100, show_default=True)
@click.option("--debug", envvar="DEBUG", is_flag=True, default=False, help="Enable debug logging")
@click.option("--log-level", envvar="LOG_LEVEL", default="INFO", show_default=True)
def run(
    target,
    git_username,
    git_password,
    hostname,
    ssh,
    directory,
    pass_env,
    check_interval,
    vault_addr,
    vault_token,
    vault_path,
    vault_renew_interval,
    vault_config_path,
    bus_capacity,
    debug,
    log_level,
):
    """Watch TARGET and run its targets whenever they change."""
    log_config.dictConfig(get_logging_config("DEBUG" if debug else log_level))

    try:
        config = Config(
            target=Repo(url=target, user=git_username, password=git_password),
            hostname=hostname,
            directory=directory,
            ssh=ssh,
            pass_environment=pass_env,
            check_interval=check_interval,
            vault_address=vault_addr,
            vault_token=vault_token,
            vault_path=vault_path,
            vault_renewal=vault_renew_interval,
            vault_config=vault_config_path,
            bus_capacity=bus_capacity,
        )
    except ValueError as e:
        raise click.UsageError(str(e))

    logger.info(f"Starting pico for {config.target.url} as {config.hostname}")
    logger.debug(f"Configuration: {config}")
    sys.exit(asyncio.run(serve(config)))


def main():
    """Main entry point."""
    load_dotenv()
    cli()


if __name__ == "__main__":
    main()
