"""
MX-Revolution wheel protocol: report encoding and answer validation.

Every command and query is a 6-byte payload sent with HID report id 0x10.
Protocol details from revoco (E. Toernig, 2006) plus the battery/reconnect
codes found by A. Schneider and the MX-5500 combo changes.

Command layout::

    [prefix, 0x80, 0x56, opcode, arg1, arg2]

    prefix  1 = MX-Revolution receivers, 2 = MX-5500 combo
    opcode  base opcode | 0x80 to make the setting the power-on default

    base  action                               arg1            arg2
    ----  -----------------------------------  --------------  ---------
    1     free-spin immediately                0               0
    2     click-to-click immediately           0               0
    3     free-spin when the wheel is moved    0               0
    4     click-to-click when wheel is moved   0               0
    5     auto switch by wheel speed           up (0-50)       down (0-50)
    7     manual, separate FS / CC buttons     fs<<4 | cc      0
    8     manual, one button toggles           button          0

Query layout::

    [prefix, 0x81, query_id, 0, 0, 0]    query_id 0x08 = mode, 0x0d = battery

Answer layout (6 bytes after the report id)::

    [channel (0-2), 0x81, class, b3, b4, b5]

    class   0x08, or 0xb1 (mode) / 0x0d (battery) depending on the device
    mode    b5 bit 0: 1 = click-to-click, 0 = free spinning
    battery b3 = level in percent, b5 = 0x30 on battery / 0x50 charging /
            0x90 fully charged
"""

from dataclasses import dataclass
from enum import Enum

from .commands import (
    AutoSwitch,
    ClickOnMove,
    ClickToClick,
    FreeOnMove,
    FreeSpin,
    ManualSwitch,
    QueryBattery,
    QueryMode,
    RawReport,
    Reconnect,
    SoftClick,
    SoftFreeSpin,
)
from .errors import UnexpectedResponse

# =========================================================================
# Constants
# =========================================================================

REPORT_ID = 0x10
REPORT_SIZE = 6

CMD_MARKER = bytes([0x80, 0x56])
QUERY_MARKER = 0x81

PERSISTENT_FLAG = 0x80

OP_FREE_SPIN = 0x01
OP_CLICK_TO_CLICK = 0x02
OP_FREE_ON_MOVE = 0x03
OP_CLICK_ON_MOVE = 0x04
OP_AUTO = 0x05
OP_MANUAL_TWO_BUTTONS = 0x07
OP_MANUAL_ONE_BUTTON = 0x08

# Tuning commands share opcodes 3/4 and never carry the persistence flag
OP_SOFT_FREE = 0x03
OP_SOFT_CLICK = 0x04

QUERY_MODE = 0x08
QUERY_BATTERY = 0x0D

RECONNECT_PAYLOAD = bytes([0xFF, 0x80, 0xB2, 0x01, 0x00, 0x00])

# Answer checks
ANSWER_CHANNELS = (0x00, 0x01, 0x02)
ANSWER_CLASS_SHARED = 0x08
ANSWER_CLASS_ALTERNATE = {
    QUERY_MODE: 0xB1,
    QUERY_BATTERY: 0x0D,
}

BATTERY_ON_BATTERY = 0x30
BATTERY_CHARGING = 0x50
BATTERY_FULL = 0x90


# =========================================================================
# Types
# =========================================================================

class ProtocolVariant(Enum):
    """Framing variant, picked from the product id at discovery time."""
    REVOLUTION = 1
    COMBO_5500 = 2

    @property
    def prefix(self) -> int:
        """Leading payload byte for every command and query."""
        return self.value


@dataclass(frozen=True)
class Report:
    """One outgoing HID report."""
    report_id: int
    payload: bytes

    @property
    def wire(self) -> bytes:
        """Bytes as written to the device file (report id first)."""
        return bytes([self.report_id]) + self.payload


class WheelMode(Enum):
    FREE_SPIN = "free spinning"
    CLICK_TO_CLICK = "click-to-click"


class BatteryState(Enum):
    ON_BATTERY = "running on battery"
    CHARGING = "charging"
    FULLY_CHARGED = "fully charged"
    UNKNOWN = "unknown"


_BATTERY_STATES = {
    BATTERY_ON_BATTERY: BatteryState.ON_BATTERY,
    BATTERY_CHARGING: BatteryState.CHARGING,
    BATTERY_FULL: BatteryState.FULLY_CHARGED,
}


@dataclass(frozen=True)
class ModeStatus:
    """Decoded answer to a mode query."""
    mode: WheelMode

    @property
    def description(self) -> str:
        return self.mode.value


@dataclass(frozen=True)
class BatteryStatus:
    """Decoded answer to a battery query."""
    level: int
    status_code: int

    @property
    def state(self) -> BatteryState:
        return _BATTERY_STATES.get(self.status_code, BatteryState.UNKNOWN)

    @property
    def description(self) -> str:
        """``battery level 85%, charging`` (unknown codes as ``status 7f``)."""
        state = self.state
        if state is BatteryState.UNKNOWN:
            text = f"status {self.status_code:02x}"
        else:
            text = state.value
        return f"battery level {self.level}%, {text}"


# =========================================================================
# Encoder
# =========================================================================

def build_command(variant: ProtocolVariant, opcode: int, arg1: int = 0, arg2: int = 0) -> Report:
    """Frame one wheel command for *variant*."""
    payload = bytes([variant.prefix]) + CMD_MARKER + bytes([opcode, arg1, arg2])
    return Report(REPORT_ID, payload)


def mode_opcode(base: int, persistent: bool) -> int:
    """Combine a base opcode with the power-on-default flag."""
    return base | PERSISTENT_FLAG if persistent else base


def encode_manual(variant: ProtocolVariant, free_button: int, click_button: int,
                  persistent: bool = True) -> Report:
    """Encode a manual mode switch.

    Distinct buttons use opcode 7 with both buttons packed in one byte;
    a single toggle button uses opcode 8.
    """
    if free_button != click_button:
        return build_command(variant, mode_opcode(OP_MANUAL_TWO_BUTTONS, persistent),
                             free_button * 16 + click_button)
    return build_command(variant, mode_opcode(OP_MANUAL_ONE_BUTTON, persistent), free_button)


_SIMPLE_MODES = {
    FreeSpin: OP_FREE_SPIN,
    ClickToClick: OP_CLICK_TO_CLICK,
    FreeOnMove: OP_FREE_ON_MOVE,
    ClickOnMove: OP_CLICK_ON_MOVE,
}


def encode_command(command, variant: ProtocolVariant) -> Report:
    """Encode a configuration command into its report.

    Raises:
        TypeError: For commands that are not sent as a single report
            (queries, reads, sleeps).
    """
    cls = type(command)
    if cls in _SIMPLE_MODES:
        return build_command(variant, mode_opcode(_SIMPLE_MODES[cls], command.persistent))
    if isinstance(command, AutoSwitch):
        return build_command(variant, mode_opcode(OP_AUTO, command.persistent),
                             command.up, command.down)
    if isinstance(command, ManualSwitch):
        return encode_manual(variant, command.free_button, command.click_button,
                             command.persistent)
    if isinstance(command, SoftFreeSpin):
        return build_command(variant, OP_SOFT_FREE, command.arg1, command.arg2)
    if isinstance(command, SoftClick):
        return build_command(variant, OP_SOFT_CLICK, command.arg1, command.arg2)
    if isinstance(command, Reconnect):
        return Report(REPORT_ID, RECONNECT_PAYLOAD)
    if isinstance(command, QueryMode):
        return encode_query(QUERY_MODE, variant)
    if isinstance(command, QueryBattery):
        return encode_query(QUERY_BATTERY, variant)
    if isinstance(command, RawReport):
        return Report(command.report_id, command.payload)
    raise TypeError(f"{cls.__name__} is not an encodable command")


def encode_query(query_id: int, variant: ProtocolVariant) -> Report:
    """Build the request for a mode or battery query."""
    return Report(REPORT_ID, bytes([variant.prefix, QUERY_MARKER, query_id, 0, 0, 0]))


# =========================================================================
# Validator
# =========================================================================

def accepted_classes(query_id: int) -> frozenset:
    """Class bytes a well-formed answer to *query_id* may carry.

    Unknown query ids accept every class the device is known to use.
    """
    alternate = ANSWER_CLASS_ALTERNATE.get(query_id)
    if alternate is None:
        return frozenset({ANSWER_CLASS_SHARED, *ANSWER_CLASS_ALTERNATE.values()})
    return frozenset({ANSWER_CLASS_SHARED, alternate})


def validate_response(query_id: int, raw: bytes) -> bytes:
    """Check an answer's framing; return it as ``bytes`` when it is valid.

    Raises:
        UnexpectedResponse: Wrong length, channel, echo marker or class byte.
    """
    raw = bytes(raw)
    if (
        len(raw) != REPORT_SIZE
        or raw[0] not in ANSWER_CHANNELS
        or raw[1] != QUERY_MARKER
        or raw[2] not in accepted_classes(query_id)
    ):
        raise UnexpectedResponse(query_id, raw)
    return raw


def decode_mode(raw: bytes) -> ModeStatus:
    if raw[5] & 0x01:
        return ModeStatus(WheelMode.CLICK_TO_CLICK)
    return ModeStatus(WheelMode.FREE_SPIN)


def decode_battery(raw: bytes) -> BatteryStatus:
    return BatteryStatus(level=raw[3], status_code=raw[5])


def validate_and_decode(query_id: int, raw: bytes):
    """Validate an answer and decode it by query class.

    Returns:
        ModeStatus, BatteryStatus, or the validated raw bytes for other
        query ids.
    """
    raw = validate_response(query_id, raw)
    if query_id == QUERY_MODE:
        return decode_mode(raw)
    if query_id == QUERY_BATTERY:
        return decode_battery(raw)
    return raw
