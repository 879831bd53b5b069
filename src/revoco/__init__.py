"""
revoco - Logitech MX-Revolution wheel control

Switch the scroll wheel of MX-Revolution mice (and the MX-5500 combo)
between free spinning and click-to-click, set the automatic or button
driven switching, and read battery state over raw HID reports.

Usage:
    # As a library
    from revoco import find_device, parse_commands, run_commands
    with find_device() as handle:
        run_commands(handle, parse_commands(["temp-free", "battery"]))

    # Command line
    revoco free               # free spinning, default after power up
    revoco temp-click mode    # click-to-click until power cycle, show mode
    revoco auto=10,20         # automatic switch by wheel speed
"""

from revoco.__version__ import __version__
from revoco.commands import parse_command, parse_commands
from revoco.device_detector import KNOWN_DEVICES, find_device, locate_device
from revoco.errors import (
    ArgumentOutOfRange,
    CommandSyntaxError,
    DeviceNotFound,
    DevicePermissionDenied,
    ReportIOError,
    RevocoError,
    UnexpectedResponse,
)
from revoco.hid_device import DeviceHandle
from revoco.protocol import ProtocolVariant, encode_command, encode_query, validate_and_decode
from revoco.session import query, run_commands

__all__ = [
    # Version
    "__version__",
    # Commands
    "parse_command",
    "parse_commands",
    # Device
    "KNOWN_DEVICES",
    "DeviceHandle",
    "find_device",
    "locate_device",
    # Protocol
    "ProtocolVariant",
    "encode_command",
    "encode_query",
    "validate_and_decode",
    # Session
    "query",
    "run_commands",
    # Errors
    "RevocoError",
    "CommandSyntaxError",
    "ArgumentOutOfRange",
    "DeviceNotFound",
    "DevicePermissionDenied",
    "ReportIOError",
    "UnexpectedResponse",
]
