"""
Exception types for revoco.

Fatal errors stop the whole run (``cli`` maps them to exit code 1).
Recoverable errors only abort the current report exchange; the session
logs them and moves on to the next command.

Fatal:
    CommandSyntaxError     - malformed command token
    ArgumentOutOfRange     - numeric argument outside its range
    DeviceNotFound         - no supported device behind any path template
    DevicePermissionDenied - a candidate device file could not be opened

Recoverable:
    ReportIOError          - a report write/read failed or was short
    UnexpectedResponse     - a query answer failed validation
"""

from typing import List, Optional


class RevocoError(Exception):
    """Base class for all revoco errors."""


class CommandSyntaxError(RevocoError, ValueError):
    """A command token could not be parsed."""

    def __init__(self, message: str, token: str = ""):
        super().__init__(message)
        self.token = token


class ArgumentOutOfRange(CommandSyntaxError):
    """A numeric command argument is outside its allowed range."""

    def __init__(self, token: str, value: int, minimum: int, maximum: int):
        super().__init__(
            f"argument `{value}' in `{token}' out of range ({minimum}-{maximum})",
            token,
        )
        self.value = value
        self.minimum = minimum
        self.maximum = maximum


class DeviceNotFound(RevocoError):
    """No supported device was found behind any candidate path.

    Attributes:
        probed: Concrete paths that were tried, in order.
        device_files_present: True if at least one candidate device file
            existed and could be opened (just not a supported device).
    """

    def __init__(self, message: str, probed: Optional[List[str]] = None,
                 device_files_present: bool = False):
        super().__init__(message)
        self.probed = probed or []
        self.device_files_present = device_files_present


class DevicePermissionDenied(DeviceNotFound):
    """A candidate device file exists but may not be opened read/write."""

    def __init__(self, path: str, probed: Optional[List[str]] = None):
        super().__init__(
            f"No permission to access {path}",
            probed=probed,
            device_files_present=True,
        )
        self.path = path


class ReportIOError(RevocoError):
    """A single report exchange failed (write or read)."""


class UnexpectedResponse(RevocoError):
    """A query answer did not pass validation.

    The raw bytes are kept so they can be shown to the user.
    """

    def __init__(self, query_id: int, raw: bytes):
        self.query_id = query_id
        self.raw = bytes(raw)
        super().__init__(f"bad answer: {format_bytes(self.raw)}")


def format_bytes(data: bytes) -> str:
    """Format bytes as upper-case space separated hex (``01 81 08``)."""
    return " ".join(f"{b:02X}" for b in data)
