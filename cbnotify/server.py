"""HTTP server receiving Cloud Build events from a Pub/Sub push subscription."""

from __future__ import annotations

import base64
import binascii
from typing import Any

from aiohttp import web
from pydantic import ValidationError

from cbnotify.build import Build
from cbnotify.config import ServerConfig
from cbnotify.errors import InvalidEventError, NotifyError
from cbnotify.notifier import DiscordNotifier
from cbnotify.utils.logging import get_logger

log = get_logger(__name__)


def decode_pubsub_push(payload: Any) -> Build:
    """Extract the build from a Pub/Sub push envelope.

    The envelope looks like ``{"message": {"data": "<base64 JSON>", ...},
    "subscription": "..."}``.
    """
    if not isinstance(payload, dict):
        raise InvalidEventError("push payload must be a JSON object")
    message = payload.get("message")
    if not isinstance(message, dict):
        raise InvalidEventError("push payload has no message")
    data = message.get("data")
    if not isinstance(data, str) or not data:
        raise InvalidEventError("push message has no data")

    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidEventError(f"push message data is not base64: {e}") from e

    try:
        return Build.model_validate_json(raw)
    except ValidationError as e:
        raise InvalidEventError(f"push message data is not a build: {e}") from e


class NotifierServer:
    """Receives Pub/Sub pushes and hands each build to the notifier."""

    def __init__(self, config: ServerConfig, notifier: DiscordNotifier) -> None:
        self._config = config
        self._notifier = notifier
        self._runner: web.AppRunner | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        app = self._build_app()
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self._config.bind, self._config.port)
        await site.start()
        log.info(
            "notifier_server_started",
            bind=self._config.bind,
            port=self._config.port,
            path=self._path,
        )

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        log.info("notifier_server_stopped")

    # ------------------------------------------------------------------
    # App construction
    # ------------------------------------------------------------------

    @property
    def _path(self) -> str:
        path = self._config.path
        return path if path.startswith("/") else f"/{path}"

    def _build_app(self) -> web.Application:
        app = web.Application()
        app.router.add_post(self._path, self._handle_push)
        app.router.add_get("/healthz", self._handle_health)
        return app

    # ------------------------------------------------------------------
    # Request handling
    # ------------------------------------------------------------------

    async def _handle_health(self, request: web.Request) -> web.Response:
        return web.Response(status=200, text="OK")

    async def _handle_push(self, request: web.Request) -> web.Response:
        try:
            payload = await request.json()
        except ValueError:
            return web.Response(status=400, text="Invalid JSON")

        try:
            build = decode_pubsub_push(payload)
        except InvalidEventError as e:
            log.warning("invalid_push", error=str(e))
            return web.Response(status=400, text="Invalid build event")

        try:
            await self._notifier.send_notification(build)
        except NotifyError as e:
            log.error(
                "notification_failed",
                build_id=build.id,
                status=build.status.value,
                error=str(e),
            )
            return web.Response(status=500, text="Notification failed")

        return web.Response(status=200, text="OK")
