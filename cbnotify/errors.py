"""Error types raised during setup and notification."""

from __future__ import annotations


class NotifierError(Exception):
    """Base class for all cbnotify errors."""


# ---------------------------------------------------------------------------
# Setup (fatal)
# ---------------------------------------------------------------------------

class ConfigError(NotifierError):
    """Configuration could not be loaded or applied. Startup must stop."""


class InvalidFilterError(ConfigError):
    """The filter expression did not compile."""


class SecretResolutionError(ConfigError):
    """A webhook secret reference could not be resolved or fetched."""


# ---------------------------------------------------------------------------
# Notification (per event)
# ---------------------------------------------------------------------------

class NotifyError(NotifierError):
    """A single build event could not be delivered."""


class NoEndpointError(NotifyError):
    """No webhook is mapped for the service and no default is configured."""

    def __init__(self, service: str) -> None:
        super().__init__(
            f"failed to find delivery URL for service {service!r} and no default provided"
        )
        self.service = service


class DeliveryFailedError(NotifyError):
    """The webhook POST failed at the transport level."""


class InvalidEventError(NotifierError):
    """An inbound request did not carry a decodable build event."""
