"""Discord notifier for Cloud Build events."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any

import httpx

from cbnotify.build import Build
from cbnotify.config import NotifierConfig
from cbnotify.errors import DeliveryFailedError, NoEndpointError, SecretResolutionError
from cbnotify.filters import EventFilter, make_cel_predicate
from cbnotify.message import MentionRule, build_message
from cbnotify.secrets import SecretGetter, find_secret_resource_name, get_secret_ref
from cbnotify.utils.logging import get_logger

log = get_logger(__name__)

WEBHOOK_URL_SECRET_NAME = "webhookUrl"
DEFAULT_SERVICE = "default"

MENTION_PROJECT_PARAM = "mentionProjectId"
MENTION_USER_PARAM = "mentionUserId"


class DiscordNotifier:
    """Posts build status embeds to Discord webhooks.

    ``setup`` runs once before any ``send_notification`` call. After it
    returns, the filter, mention rule and endpoint table are never
    modified, so concurrent ``send_notification`` calls are safe.
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._filter: EventFilter | None = None
        self._mention: MentionRule | None = None
        self._urls: Mapping[str, str] = MappingProxyType({})
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)

    @property
    def urls(self) -> Mapping[str, str]:
        return self._urls

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    async def setup(self, config: NotifierConfig, secret_getter: SecretGetter) -> None:
        notification = config.spec.notification

        event_filter: EventFilter | None = None
        if notification.filter:
            event_filter = make_cel_predicate(notification.filter)

        urls: dict[str, str] = {}
        for service, entry in _delivery_entries(notification.delivery).items():
            log.info("delivery_entry_found", service=service)
            ref = get_secret_ref(entry, WEBHOOK_URL_SECRET_NAME)
            resource = find_secret_resource_name(config.spec.secrets, ref)
            urls[service] = await secret_getter.get_secret(resource)

        if not urls:
            raise SecretResolutionError("delivery config has no webhook entries")

        params = notification.params
        mention = None
        if params.get(MENTION_PROJECT_PARAM) and params.get(MENTION_USER_PARAM):
            mention = MentionRule(
                project_id=params[MENTION_PROJECT_PARAM],
                user_id=params[MENTION_USER_PARAM],
            )

        self._filter = event_filter
        self._mention = mention
        self._urls = MappingProxyType(urls)
        log.info(
            "notifier_configured",
            services=sorted(urls),
            filtered=event_filter is not None,
            mention=mention is not None,
        )

    # ------------------------------------------------------------------
    # Notification
    # ------------------------------------------------------------------

    async def send_notification(self, build: Build) -> None:
        if self._filter is not None and self._filter.apply(build):
            log.debug("build_filtered", build_id=build.id, status=build.status.value)
            return

        log.info(
            "sending_discord_webhook",
            build_id=build.id,
            status=build.status.value,
            service=build.service_name,
        )
        msg = build_message(build, self._mention)
        if msg is None:
            return

        url = self.resolve_url(build.service_name)
        payload = msg.to_json()
        log.debug("sending_payload", build_id=build.id, payload=payload)

        try:
            resp = await self._client.post(
                url,
                content=payload.encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DeliveryFailedError(f"failed to post discord webhook: {e}") from e

        if resp.is_success:
            log.info("discord_webhook_response", build_id=build.id, status_code=resp.status_code)
        else:
            log.warning(
                "discord_webhook_response",
                build_id=build.id,
                status_code=resp.status_code,
                body=resp.text[:500],
            )

    def resolve_url(self, service: str) -> str:
        """Return the webhook for ``service``, falling back to the default."""
        url = self._urls.get(service)
        if url is None:
            url = self._urls.get(DEFAULT_SERVICE)
        if url is None:
            raise NoEndpointError(service)
        return url

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def _delivery_entries(delivery: Mapping[str, Any]) -> dict[str, Mapping[str, Any]]:
    """Normalize both delivery layouts to ``{service: entry}``.

    A delivery block holding ``webhookUrl`` directly is the single-endpoint
    layout and becomes the default entry.
    """
    if WEBHOOK_URL_SECRET_NAME in delivery:
        return {DEFAULT_SERVICE: delivery}

    entries: dict[str, Mapping[str, Any]] = {}
    for service, entry in delivery.items():
        if not isinstance(entry, Mapping):
            raise SecretResolutionError(
                f"delivery entry for service {service!r} must be a mapping, "
                f"got {type(entry).__name__}"
            )
        entries[str(service)] = entry
    return entries
