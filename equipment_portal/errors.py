from __future__ import annotations

from typing import Optional


class PortalError(Exception):
    """Base class for errors surfaced to API callers."""

    def __init__(self, message: str, cause: Optional[BaseException | str] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause

    @property
    def details(self) -> str:
        if self.cause is None:
            return self.message
        return str(self.cause)


class RemoteUnavailable(PortalError):
    """A listing, fetch, upload or token call against the remote store failed."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException | str] = None,
        *,
        status: Optional[int] = None,
        original_preserved: bool = False,
    ):
        super().__init__(message, cause)
        self.status = status
        self.original_preserved = original_preserved


class MalformedInput(PortalError):
    """Caller-supplied folder or records are missing or malformed."""


class DecodeAnomaly(PortalError):
    """The sheet does not have the expected shape."""


class ColumnLayoutMismatch(DecodeAnomaly):
    """The column-header row does not match the declared column layout."""


class UnreadableWorkbook(DecodeAnomaly):
    """The downloaded bytes are not a readable xlsx workbook."""


class LoginRequired(Exception):
    """Raised by the session gate for requests without a valid session."""
