"""Shared fixtures for cbnotify tests."""

from typing import Any

import pytest

from cbnotify.build import Build
from cbnotify.config import NotifierConfig
from cbnotify.notifier import DiscordNotifier
from cbnotify.secrets import StaticSecretGetter

API_WEBHOOK = "https://discord.test/api/webhooks/1/api-token"
DEFAULT_WEBHOOK = "https://discord.test/api/webhooks/2/default-token"

API_SECRET = "projects/p/secrets/api-webhook/versions/latest"
DEFAULT_SECRET = "projects/p/secrets/default-webhook/versions/latest"


def notifier_config_data(
    delivery: dict[str, Any] | None = None,
    filter: str = "",
    params: dict[str, str] | None = None,
) -> dict[str, Any]:
    if delivery is None:
        delivery = {
            "api": {"webhookUrl": {"secretRef": "api-webhook"}},
            "default": {"webhookUrl": {"secretRef": "default-webhook"}},
        }
    return {
        "apiVersion": "cloud-build-notifiers/v1",
        "kind": "DiscordNotifier",
        "metadata": {"name": "test-notifier"},
        "spec": {
            "notification": {
                "filter": filter,
                "params": params or {},
                "delivery": delivery,
            },
            "secrets": [
                {"name": "api-webhook", "value": API_SECRET},
                {"name": "default-webhook", "value": DEFAULT_SECRET},
            ],
        },
    }


@pytest.fixture
def make_config():
    def _make(**kwargs: Any) -> NotifierConfig:
        return NotifierConfig.model_validate(notifier_config_data(**kwargs))

    return _make


@pytest.fixture
def make_build():
    def _make(status: str = "SUCCESS", **kwargs: Any) -> Build:
        data: dict[str, Any] = {
            "id": "b1",
            "projectId": "p1",
            "status": status,
            "logUrl": "https://x/log",
        }
        data.update(kwargs)
        return Build.model_validate(data)

    return _make


@pytest.fixture
def secret_getter():
    return StaticSecretGetter({API_SECRET: API_WEBHOOK, DEFAULT_SECRET: DEFAULT_WEBHOOK})


@pytest.fixture
async def notifier():
    n = DiscordNotifier()
    yield n
    await n.close()


@pytest.fixture
async def configured_notifier(notifier, make_config, secret_getter):
    await notifier.setup(
        make_config(params={"mentionProjectId": "p1", "mentionUserId": "42"}),
        secret_getter,
    )
    return notifier
