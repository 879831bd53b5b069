"""
Run a list of parsed commands against an open device.

Commands run strictly in order, one report exchange at a time.  A failed
exchange (I/O error, bad answer) is logged and the session carries on with
the next command; fatal conditions never reach this module because they
are raised before the device is opened.
"""

import logging
import time
from typing import Callable

from .commands import QueryBattery, QueryMode, ReadReport, Reconnect, Sleep
from .errors import ReportIOError, UnexpectedResponse, format_bytes
from .hid_device import DeviceHandle
from .protocol import (
    QUERY_BATTERY,
    QUERY_MODE,
    REPORT_ID,
    REPORT_SIZE,
    encode_command,
    encode_query,
    validate_and_decode,
)

log = logging.getLogger(__name__)

RECONNECT_INSTRUCTIONS = (
    "Reconnection initiated",
    " - Turn off the mouse",
    " - Press and hold the left mouse button",
    " - Turn on the mouse",
    " - Press the right button 5 times",
    " - Release the left mouse button",
)


def query(handle: DeviceHandle, query_id: int):
    """Send a query and return the decoded answer.

    Raises:
        ReportIOError: Write or read failed.
        UnexpectedResponse: The answer failed validation.
    """
    handle.send(encode_query(query_id, handle.variant))
    raw = handle.receive(REPORT_ID, REPORT_SIZE)
    return validate_and_decode(query_id, raw)


def run_command(handle: DeviceHandle, command, out: Callable = print,
                sleep: Callable = time.sleep) -> None:
    """Execute one command.  Recoverable errors propagate to the caller."""
    if isinstance(command, Sleep):
        log.debug("sleeping %d s", command.seconds)
        sleep(command.seconds)
    elif isinstance(command, QueryMode):
        out(query(handle, QUERY_MODE).description)
    elif isinstance(command, QueryBattery):
        out(query(handle, QUERY_BATTERY).description)
    elif isinstance(command, ReadReport):
        data = handle.receive(command.report_id, command.length)
        out(f"report {command.report_id:02x}: {data[:command.length].hex(' ')}")
    else:
        handle.send(encode_command(command, handle.variant))
        if isinstance(command, Reconnect):
            for line in RECONNECT_INSTRUCTIONS:
                out(line)


def run_commands(handle: DeviceHandle, commands, out: Callable = print,
                 sleep: Callable = time.sleep) -> int:
    """Execute *commands* in order against *handle*.

    Returns:
        Number of commands whose exchange failed (0 = all fine).
    """
    failures = 0
    for command in commands:
        try:
            run_command(handle, command, out=out, sleep=sleep)
        except UnexpectedResponse as e:
            failures += 1
            log.warning("bad answer: %s", format_bytes(e.raw))
        except ReportIOError as e:
            failures += 1
            log.error("%s", e)
    if failures:
        log.info("%d of %d command(s) failed", failures, len(commands))
    return failures
