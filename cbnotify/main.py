"""cbnotify entry point: loads config, sets up the notifier and serves pushes."""

from __future__ import annotations

import asyncio
import signal
import sys

import click
import httpx

from cbnotify import __version__
from cbnotify.config import Settings, load_notifier_config, load_settings
from cbnotify.errors import ConfigError
from cbnotify.notifier import DiscordNotifier
from cbnotify.secrets import create_secret_getter
from cbnotify.server import NotifierServer
from cbnotify.utils.logging import get_logger, setup_logging

log = get_logger(__name__)


async def create_notifier(settings: Settings) -> DiscordNotifier:
    """Build and set up a notifier from settings.

    Raises ConfigError if anything about the configuration is unusable.
    """
    if not settings.notifier_config:
        raise ConfigError("no notifier config path given (--config or CBNOTIFY_NOTIFIER_CONFIG)")
    config = load_notifier_config(settings.notifier_config)

    secret_getter = create_secret_getter(settings.secrets)
    notifier = DiscordNotifier(httpx.AsyncClient(timeout=settings.http_timeout))
    try:
        await notifier.setup(config, secret_getter)
    except ConfigError:
        await notifier.close()
        raise
    finally:
        await secret_getter.close()
    return notifier


async def run(settings: Settings, setup_check: bool = False) -> None:
    log.info("cbnotify_starting", version=__version__)
    notifier = await create_notifier(settings)

    if setup_check:
        log.info("setup_check_passed", services=sorted(notifier.urls))
        await notifier.close()
        return

    server = NotifierServer(settings.server, notifier)

    loop = asyncio.get_running_loop()
    stop_event = asyncio.Event()

    def _signal_handler() -> None:
        log.info("shutdown_signal")
        stop_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, _signal_handler)

    await server.start()

    try:
        if sys.platform == "win32":
            while not stop_event.is_set():
                await asyncio.sleep(1)
        else:
            await stop_event.wait()
    except KeyboardInterrupt:
        pass
    finally:
        await server.stop()
        await notifier.close()


@click.command()
@click.option("--settings", "settings_path", default=None, help="Path to service settings YAML file")
@click.option("--config", "config_path", default=None, help="Path to notifier config YAML file")
@click.option("--port", type=int, default=None, envvar="PORT", help="Port to listen on")
@click.option("--log-level", default=None, help="Log level (DEBUG, INFO, WARNING, ERROR)")
@click.option("--setup-check", is_flag=True, help="Validate config and secrets, then exit")
def cli(
    settings_path: str | None,
    config_path: str | None,
    port: int | None,
    log_level: str | None,
    setup_check: bool,
) -> None:
    """Forward Cloud Build events to Discord webhooks."""
    settings = load_settings(settings_path)
    if config_path:
        settings.notifier_config = config_path
    if port is not None:
        settings.server.port = port
    if log_level:
        settings.log_level = log_level
    setup_logging(level=settings.log_level, json_output=settings.log_json)

    try:
        asyncio.run(run(settings, setup_check=setup_check))
    except ConfigError as e:
        log.error("setup_failed", error=str(e))
        sys.exit(1)


if __name__ == "__main__":
    cli()
