"""Error taxonomy.

Only pre-flight validation is raised. Remote failures travel as
:class:`HttpError` values inside results so a batch never aborts.
"""

from __future__ import annotations

from dataclasses import dataclass

TRANSPORT_ERROR_STATUS = 0


class EnvdeckError(Exception):
    """Base class for envdeck exceptions."""


class OperationValidationError(EnvdeckError, ValueError):
    """Raised before any network call when a request is malformed."""


@dataclass(frozen=True)
class HttpError:
    """A failed remote call.

    ``status`` is the HTTP status code, or ``0`` when no response was
    received at all (DNS failure, refused connection, timeout).
    """

    status: int
    message: str = ""

    @property
    def is_transport(self) -> bool:
        return self.status == TRANSPORT_ERROR_STATUS

    @property
    def is_not_found(self) -> bool:
        return self.status == 404

    @property
    def is_auth(self) -> bool:
        return self.status in (401, 403)

    def describe(self) -> str:
        """Short text for result tables."""
        if self.message:
            return self.message
        if self.is_transport:
            return "Network error"
        return f"HTTP {self.status}"


class RemoteError(EnvdeckError):
    """A single-location call failed; carries the remote error."""

    def __init__(self, action: str, error: HttpError) -> None:
        super().__init__(f"{action}: {error.describe()}")
        self.action = action
        self.error = error

    @property
    def status(self) -> int:
        return self.error.status


class NotSignedInError(EnvdeckError):
    """Raised when a console is used after sign-out."""
