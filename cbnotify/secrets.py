"""Secret references and secret backends."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, Protocol

from google.api_core.exceptions import GoogleAPIError
from google.auth.exceptions import GoogleAuthError
from google.cloud import secretmanager

from cbnotify.config import SecretConfig, SecretsConfig
from cbnotify.errors import ConfigError, SecretResolutionError
from cbnotify.utils.logging import get_logger

log = get_logger(__name__)

SECRET_REF_KEY = "secretRef"


class SecretGetter(Protocol):
    """Anything that can fetch the value of a secret resource."""

    async def get_secret(self, resource_name: str) -> str: ...


# ---------------------------------------------------------------------------
# Reference helpers
# ---------------------------------------------------------------------------

def get_secret_ref(config: Mapping[str, Any], field: str) -> str:
    """Return the ``secretRef`` named under ``config[field]``."""
    if field not in config:
        raise SecretResolutionError(f"field {field!r} not present in delivery config")
    value = config[field]
    if not isinstance(value, Mapping):
        raise SecretResolutionError(
            f"expected field {field!r} to be a mapping with a {SECRET_REF_KEY!r} key, "
            f"got {type(value).__name__}"
        )
    ref = value.get(SECRET_REF_KEY)
    if not isinstance(ref, str) or not ref:
        raise SecretResolutionError(
            f"field {field!r} has no string {SECRET_REF_KEY!r}"
        )
    return ref


def find_secret_resource_name(secrets: Iterable[SecretConfig], ref: str) -> str:
    """Return the resource name of the secret declared as ``ref``."""
    for secret in secrets:
        if secret.name == ref:
            return secret.value
    raise SecretResolutionError(f"failed to find Secret with name {ref!r}")


# ---------------------------------------------------------------------------
# Backends
# ---------------------------------------------------------------------------

class StaticSecretGetter:
    """Serves secrets from a fixed mapping of resource name to value."""

    def __init__(self, values: Mapping[str, str]) -> None:
        self._values = dict(values)

    async def get_secret(self, resource_name: str) -> str:
        try:
            return self._values[resource_name]
        except KeyError:
            raise SecretResolutionError(f"no static secret for {resource_name!r}") from None

    async def close(self) -> None:
        pass


class SecretManagerGetter:
    """Google Secret Manager through the official async client.

    Credentials come from Application Default Credentials. The client is
    created on first use so that constructing the getter never touches
    the credential chain.
    """

    def __init__(
        self,
        client: secretmanager.SecretManagerServiceAsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client

    def _get_client(self) -> secretmanager.SecretManagerServiceAsyncClient:
        if self._client is None:
            self._client = secretmanager.SecretManagerServiceAsyncClient()
        return self._client

    async def get_secret(self, resource_name: str) -> str:
        try:
            response = await self._get_client().access_secret_version(name=resource_name)
            value = response.payload.data.decode("utf-8")
        except (GoogleAPIError, GoogleAuthError) as e:
            raise SecretResolutionError(f"failed to get secret {resource_name!r}: {e}") from e
        except (AttributeError, UnicodeDecodeError) as e:
            raise SecretResolutionError(
                f"unexpected response accessing secret {resource_name!r}: {e}"
            ) from e

        log.info("secret_fetched", resource=resource_name)
        return value

    async def close(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.transport.close()


def create_secret_getter(config: SecretsConfig) -> StaticSecretGetter | SecretManagerGetter:
    """Construct the secret backend named by ``config.backend``."""
    backend = config.backend.lower()
    if backend == "static":
        return StaticSecretGetter(config.static)
    if backend == "secretmanager":
        return SecretManagerGetter()
    raise ConfigError(f"unknown secrets backend: {config.backend!r}")
