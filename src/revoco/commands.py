"""
Command tokens for the MX-Revolution wheel.

Every command line word is parsed into one immutable command value before
any device is opened, so a malformed word never leaves the device half
configured.

Grammar::

    token   := ["temp-"] name [ "=" [value] { "," [value] } ]
    value   := C integer literal (decimal, 0x hex, leading-zero octal)

An empty value takes the command's default; the second value of a pair
defaults to the first (``manual=3`` is ``manual=3,3``).

Button numbers (for ``manual``)::

    0 previously set button     7 wheel left tilt
    1 left (not for modes)      8 wheel right tilt
    2 right (not for modes)     9 thumb wheel forward
    3 middle (wheel button)    11 thumb wheel backward
    4 rear thumb button        13 thumb wheel pressed
    5 front thumb button
    6 find button
"""

import re
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .errors import ArgumentOutOfRange, CommandSyntaxError

# =========================================================================
# Argument ranges
# =========================================================================

BUTTON_MIN, BUTTON_MAX = 0, 15
SPEED_MIN, SPEED_MAX = 0, 50
BYTE_MIN, BYTE_MAX = 0, 255

MAX_RAW_VALUES = 256
DEFAULT_SLEEP_S = 1
DEFAULT_READ_REPORT_ID = 0x10
DEFAULT_READ_LENGTH = 6

TEMP_PREFIX = "temp-"


# =========================================================================
# Command values
# =========================================================================

@dataclass(frozen=True)
class FreeSpin:
    """Switch to free-spinning immediately."""
    persistent: bool = True


@dataclass(frozen=True)
class ClickToClick:
    """Switch to click-to-click immediately."""
    persistent: bool = True


@dataclass(frozen=True)
class FreeOnMove:
    """Switch to free-spinning once the wheel is moved."""
    persistent: bool = True


@dataclass(frozen=True)
class ClickOnMove:
    """Switch to click-to-click once the wheel is moved."""
    persistent: bool = True


@dataclass(frozen=True)
class AutoSwitch:
    """Click-to-click, switching to free-spin above a wheel speed.

    Speeds are roughly clicks per second; 0 keeps the previous value.
    """
    up: int = 0
    down: int = 0
    persistent: bool = True


@dataclass(frozen=True)
class ManualSwitch:
    """Switch modes with a button (one button toggles when both are equal)."""
    free_button: int = 0
    click_button: int = 0
    persistent: bool = True


@dataclass(frozen=True)
class SoftFreeSpin:
    """Soft free-spin tuning parameters."""
    arg1: int = 0
    arg2: int = 0


@dataclass(frozen=True)
class SoftClick:
    """Soft click-to-click tuning parameters."""
    arg1: int = 0
    arg2: int = 0


@dataclass(frozen=True)
class Reconnect:
    """Start the receiver pairing procedure."""


@dataclass(frozen=True)
class QueryMode:
    """Ask the device for the current wheel mode."""


@dataclass(frozen=True)
class QueryBattery:
    """Ask the device for battery level and charging state."""


@dataclass(frozen=True)
class RawReport:
    """Debug: send an arbitrary report."""
    report_id: int
    payload: bytes = b""


@dataclass(frozen=True)
class ReadReport:
    """Debug: read one report without sending anything first."""
    report_id: int = DEFAULT_READ_REPORT_ID
    length: int = DEFAULT_READ_LENGTH


@dataclass(frozen=True)
class Sleep:
    """Pause the session."""
    seconds: int = DEFAULT_SLEEP_S


# =========================================================================
# Value parsing
# =========================================================================

# strtol(s, NULL, 0) accepted forms
_INT_RE = re.compile(r'^[+-]?(0[xX][0-9a-fA-F]+|0[0-7]*|[1-9][0-9]*)$')


def parse_int(text: str, token: str = "") -> int:
    """Parse a C-style integer literal (``12``, ``0x0c``, ``014``).

    Raises:
        CommandSyntaxError: If *text* is not an integer literal.
    """
    text = text.strip()
    if not _INT_RE.match(text):
        raise CommandSyntaxError(f"malformed argument `{token or text}'", token)
    sign = -1 if text[0] == '-' else 1
    digits = text.lstrip('+-')
    if digits[:2].lower() == '0x':
        value = int(digits[2:], 16)
    elif len(digits) > 1 and digits[0] == '0':
        value = int(digits[1:], 8)
    else:
        value = int(digits)
    return sign * value


def split_token(token: str) -> Tuple[str, Optional[List[str]]]:
    """Split ``name=v1,v2`` into ``('name', ['v1', 'v2'])``.

    Returns ``(name, None)`` when the token carries no ``=``.
    """
    name, sep, rest = token.partition('=')
    if not sep:
        return name, None
    return name, rest.split(',')


def parse_values(
    token: str,
    values: Optional[List[str]],
    count: int,
    default: int,
    minimum: int,
    maximum: int,
    chain_default: bool = True,
) -> List[int]:
    """Parse up to *count* values, filling defaults and checking the range.

    With *chain_default*, an omitted value defaults to the previous one
    (``manual=3`` means ``manual=3,3``).

    Raises:
        CommandSyntaxError: Too many values or a non-numeric value.
        ArgumentOutOfRange: A value outside ``minimum..maximum``.
    """
    values = values or []
    if len(values) > count:
        raise CommandSyntaxError(f"malformed argument `{token}'", token)

    result: List[int] = []
    fallback = default
    for i in range(count):
        text = values[i].strip() if i < len(values) else ""
        if text:
            value = parse_int(text, token)
            if not minimum <= value <= maximum:
                raise ArgumentOutOfRange(token, value, minimum, maximum)
        else:
            value = fallback
        result.append(value)
        if chain_default:
            fallback = value
    return result


def _no_args(token: str, values: Optional[List[str]]) -> None:
    if values is not None:
        raise CommandSyntaxError(f"`{token}' takes no arguments", token)


# =========================================================================
# Token → command
# =========================================================================

def _parse_manual(token, values, persistent):
    free_button, click_button = parse_values(token, values, 2, 0, BUTTON_MIN, BUTTON_MAX)
    return ManualSwitch(free_button, click_button, persistent)


def _parse_auto(token, values, persistent):
    up, down = parse_values(token, values, 2, 0, SPEED_MIN, SPEED_MAX)
    return AutoSwitch(up, down, persistent)


def _simple(cls):
    def parse(token, values, persistent):
        _no_args(token, values)
        return cls(persistent)
    return parse


_MODE_PARSERS: Dict[str, Callable] = {
    "free": _simple(FreeSpin),
    "click": _simple(ClickToClick),
    "free-on-move": _simple(FreeOnMove),
    "click-on-move": _simple(ClickOnMove),
    "manual": _parse_manual,
    "auto": _parse_auto,
}


def _parse_soft_free(token, values):
    return SoftFreeSpin(*parse_values(token, values, 2, 0, BYTE_MIN, BYTE_MAX))


def _parse_soft_click(token, values):
    return SoftClick(*parse_values(token, values, 2, 0, BYTE_MIN, BYTE_MAX))


def _parse_raw(token, values):
    if not values or not values[0].strip():
        raise CommandSyntaxError(f"`{token}' needs at least a report id", token)
    if len(values) > MAX_RAW_VALUES:
        raise CommandSyntaxError(f"too many values in `{token[:16]}...'", token)
    data = parse_values(token, values, len(values), 0, BYTE_MIN, BYTE_MAX,
                        chain_default=False)
    return RawReport(data[0], bytes(data[1:]))


def _parse_read(token, values):
    if values is None:
        return ReadReport()
    report_id, length = parse_values(token, values, 2, -1, BYTE_MIN, BYTE_MAX,
                                     chain_default=False)
    if report_id == -1:
        return ReadReport()
    if length == -1:
        length = DEFAULT_READ_LENGTH
    return ReadReport(report_id, length)


def _parse_sleep(token, values):
    seconds, _ = parse_values(token, values, 2, DEFAULT_SLEEP_S, BYTE_MIN, BYTE_MAX)
    return Sleep(seconds)


def _fixed(cls):
    def parse(token, values):
        _no_args(token, values)
        return cls()
    return parse


_OTHER_PARSERS: Dict[str, Callable] = {
    "soft-free": _parse_soft_free,
    "soft-click": _parse_soft_click,
    "reconnect": _fixed(Reconnect),
    "mode": _fixed(QueryMode),
    "battery": _fixed(QueryBattery),
    # debug commands
    "raw": _parse_raw,
    "query": _parse_read,
    "sleep": _parse_sleep,
}


def parse_command(token: str):
    """Parse one command line word into a command value.

    Raises:
        CommandSyntaxError: Unknown command or malformed arguments.
        ArgumentOutOfRange: Numeric argument out of range.
    """
    persistent = True
    body = token
    if body.startswith(TEMP_PREFIX):
        persistent = False
        body = body[len(TEMP_PREFIX):]

    name, values = split_token(body)

    if name in _MODE_PARSERS:
        return _MODE_PARSERS[name](token, values, persistent)
    if persistent and name in _OTHER_PARSERS:
        return _OTHER_PARSERS[name](token, values)

    raise CommandSyntaxError(f"unknown command `{token}'", token)


def parse_commands(tokens: Iterable[str]) -> list:
    """Parse all command words, failing on the first bad one."""
    return [parse_command(token) for token in tokens]
