"""Exceptions raised while reading interpolated data from the PI Web API."""

from typing import Any, Optional, Tuple


class PiSyncError(Exception):
    """Base class for all errors raised by the OSI PI source."""


class InvalidInterval(PiSyncError, ValueError):
    """The interval string has an unknown unit or a non-numeric magnitude."""

    def __init__(self, interval: Any, reason: str = "") -> None:
        self.interval = interval
        msg = f"Invalid interval {interval!r}"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AttributeNotFound(PiSyncError):
    """The attribute lookup returned no match."""

    def __init__(self, attribute_path: str, detail: str = "") -> None:
        self.attribute_path = attribute_path
        msg = f"Attribute not found: {attribute_path}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class ServerDataError(PiSyncError):
    """The server answered with item errors, or with data that cannot be read."""

    def __init__(self, message: str, errors: Any = None) -> None:
        self.errors = errors
        if errors is not None:
            message = f"{message}: {errors}"
        super().__init__(message)


class FetchFailed(PiSyncError):
    """An HTTP request failed (connection error, timeout or error status)."""

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        sub_range: Optional[Tuple[str, str]] = None,
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.sub_range = sub_range
        super().__init__(message)

    def __str__(self) -> str:
        msg = super().__str__()
        if self.sub_range is not None:
            msg += f" [sub-range {self.sub_range[0]} .. {self.sub_range[1]}]"
        return msg
