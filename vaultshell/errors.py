"""
Error types raised across the VaultShell bootstrap protocol.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class ErrorResponse:
    """Typed shape of a non-success backend response."""
    status_code: int
    message: Optional[str] = None


class VaultShellError(Exception):
    """Base class for all VaultShell errors."""


class ProcessLaunchFailure(VaultShellError):
    """The backend process could not be started. Fatal to the session."""


class TransportFailure(VaultShellError):
    """A request could not reach the backend or its reply could not be read."""


class BackendRejection(VaultShellError):
    """The backend answered with a non-success status."""

    def __init__(self, response: ErrorResponse):
        super().__init__(f"Backend rejected request with HTTP {response.status_code}")
        self.response = response

    @property
    def status_code(self) -> int:
        return self.response.status_code

    @property
    def message(self) -> Optional[str]:
        return self.response.message


class ValidationFailure(VaultShellError):
    """User input violates the password policy. No request was made."""


class BridgeDeliveryError(VaultShellError):
    """An invoke over the bridge had no handler or the handler failed."""


class SubmissionInFlight(VaultShellError):
    """A setup submission is already running for this form."""
