"""Command-line interface for smtp-discord-bridge.

Usage:
    smtp-discord-bridge --config /etc/smtp-discord-bridge/config.ini
    smtp-discord-bridge --config config.ini --log-level DEBUG
    smtp-discord-bridge --config config.ini --check

The service runs until SIGINT or SIGTERM, then closes the SMTP listener and
delivers the mails that were already handed to the dispatch worker.

Startup errors (missing or invalid configuration, unusable webhook
credentials, failed webhook verification, unbindable SMTP or metrics
address) are printed to stderr and exit with status 1.
"""

from __future__ import annotations

import asyncio
import os
import signal
import sys

import click
from rich.console import Console

from smtp_discord_bridge import __version__
from smtp_discord_bridge.config_loader import ConfigError, load_config
from smtp_discord_bridge.credentials import CredentialError
from smtp_discord_bridge.logger import configure_logging, get_logger
from smtp_discord_bridge.models import BridgeConfig
from smtp_discord_bridge.prometheus import MetricsExporterError
from smtp_discord_bridge.server import BridgeService
from smtp_discord_bridge.webhook import WebhookTransportError

console = Console()
err_console = Console(stderr=True)

logger = get_logger("Cli")


def run_async(coro):
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)


def print_error(message: str) -> None:
    """Print an error message to stderr."""
    err_console.print(f"[red]Error:[/red] {message}", highlight=False)


def print_success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}", highlight=False)


async def _serve(config: BridgeConfig) -> None:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for signum in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(signum, stop_event.set)
        except NotImplementedError:  # pragma: no cover - Windows
            pass
    service = BridgeService(config)
    await service.serve(stop_event)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "-c", "--config", "config_path",
    required=True,
    type=click.Path(dir_okay=False),
    help="Path to the INI configuration file.",
)
@click.option(
    "--log-level",
    default=lambda: os.environ.get("SDB_LOG_LEVEL", "INFO"),
    show_default="INFO or $SDB_LOG_LEVEL",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level.",
)
@click.option("--check", is_flag=True, help="Validate the configuration and credentials, then exit.")
@click.version_option(__version__, prog_name="smtp-discord-bridge")
def main(config_path: str, log_level: str, check: bool) -> None:
    """Forward mail received over SMTP to a Discord webhook."""
    configure_logging(log_level)

    try:
        config = load_config(config_path)
        identity = config.discord.resolve_identity()
    except ConfigError as exc:
        print_error(str(exc))
        sys.exit(1)
    except CredentialError as exc:
        print_error(f"Invalid Discord webhook credentials ({exc.code}): {exc}")
        sys.exit(1)

    if check:
        print_success(
            f"Configuration OK: {config.smtp.display_name} on "
            f"{config.smtp.host}:{config.smtp.listen_port} -> webhook {identity.id}"
        )
        return

    try:
        run_async(_serve(config))
    except WebhookTransportError as exc:
        print_error(f"Cannot use Discord webhook: {exc}")
        sys.exit(1)
    except MetricsExporterError as exc:
        print_error(str(exc))
        sys.exit(1)
    except OSError as exc:
        print_error(f"Cannot listen on {config.smtp.host}:{config.smtp.listen_port}: {exc}")
        sys.exit(1)
    except KeyboardInterrupt:  # pragma: no cover - signal handler normally wins
        logger.info("Interrupted")


if __name__ == "__main__":
    main()
