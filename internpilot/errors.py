"""Exception types raised by the automation workflows."""
from __future__ import annotations


class AutopilotError(Exception):
    """Base class for errors surfaced to callers as structured messages."""


class ValidationError(AutopilotError):
    """A request is missing required fields or carries malformed values."""


class LoginFailed(AutopilotError):
    """The portal rejected the credentials or never left the login page."""


class LoginFormNotFound(AutopilotError):
    """The login page lacks the form or submit control needed to log in."""


class NoListingsFound(AutopilotError):
    """A search produced zero usable listings."""


class TransientProviderError(AutopilotError):
    """A listing provider answered with a rate limit or a 5xx status."""

    def __init__(self, provider: str, status: int, detail: str = "") -> None:
        self.provider = provider
        self.status = status
        super().__init__(f"{provider} API: HTTP {status}{' - ' + detail if detail else ''}")
