"""
Raw HID report I/O for the MX-Revolution receivers.

The device is driven through a HID device file: every write is one output
report (report id byte + payload), every read returns one input report
with the report id echoed in front.

The ``ReportTransport`` ABC abstracts the device file so that:
  • Tests can inject a mock transport (no real hardware needed).
  • ``HidrawTransport`` talks to ``/dev/hidrawN`` directly (os + ioctl).
  • ``HidApiTransport`` provides an alternative via HIDAPI.

Linux dependencies:
  • hidraw: none (kernel ``hidraw`` driver)
  • hidapi: ``pip install hid`` (needs libhidapi - ``apt install libhidapi-hidraw0``)
"""

import errno
import fcntl
import logging
import os
import struct
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from .errors import ReportIOError
from .protocol import REPORT_SIZE, ProtocolVariant, Report

# hidapi is optional ([hid] extra)
try:
    import hid as hidapi
    HIDAPI_AVAILABLE = True
except ImportError:
    HIDAPI_AVAILABLE = False

log = logging.getLogger(__name__)


# =========================================================================
# Constants (linux/hidraw.h)
# =========================================================================

# struct hidraw_devinfo { __u32 bustype; __s16 vendor; __s16 product; }
HIDRAW_DEVINFO = struct.Struct("=IHH")


def _IOR(type_char: str, nr: int, size: int) -> int:
    """Build a read ioctl request number (asm-generic/ioctl.h)."""
    return (2 << 30) | (size << 16) | (ord(type_char) << 8) | nr


HIDIOCGRAWINFO = _IOR('H', 0x03, HIDRAW_DEVINFO.size)


# =========================================================================
# Abstract transport
# =========================================================================

class ReportTransport(ABC):
    """One HID device file - mockable for testing."""

    def __init__(self, path: str):
        self.path = path

    @abstractmethod
    def open(self) -> None:
        """Open the device file read/write.

        Raises:
            FileNotFoundError: No such device file.
            PermissionError: Not allowed to open it.
            OSError: Any other open failure.
        """

    @abstractmethod
    def close(self) -> None:
        """Close the device file.  Safe to call twice."""

    @abstractmethod
    def write(self, data: bytes) -> int:
        """Write one report.  Returns bytes written."""

    @abstractmethod
    def read(self, length: int) -> bytes:
        """Read one report (blocking)."""

    @abstractmethod
    def device_info(self) -> Tuple[int, int]:
        """Return ``(vendor_id, product_id)`` of the open device."""

    @property
    @abstractmethod
    def is_open(self) -> bool:
        """Whether the device file is currently open."""

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, *exc):
        self.close()


# =========================================================================
# Real transport: hidraw
# =========================================================================

class HidrawTransport(ReportTransport):
    """Direct hidraw device file access.

    Identification uses the ``HIDIOCGRAWINFO`` ioctl; legacy ``hiddev``
    nodes open fine but fail that ioctl, so they never match.
    """

    def __init__(self, path: str):
        super().__init__(path)
        self._fd: Optional[int] = None

    def open(self) -> None:
        self._fd = os.open(self.path, os.O_RDWR)

    def close(self) -> None:
        if self._fd is not None:
            try:
                os.close(self._fd)
            except OSError as e:
                log.debug("close %s: %s", self.path, e)
            self._fd = None

    def _require_fd(self) -> int:
        if self._fd is None:
            raise OSError(errno.EBADF, "Transport not open", self.path)
        return self._fd

    def write(self, data: bytes) -> int:
        return os.write(self._require_fd(), data)

    def read(self, length: int) -> bytes:
        return os.read(self._require_fd(), length)

    def device_info(self) -> Tuple[int, int]:
        buf = bytearray(HIDRAW_DEVINFO.size)
        fcntl.ioctl(self._require_fd(), HIDIOCGRAWINFO, buf, True)
        _bustype, vendor, product = HIDRAW_DEVINFO.unpack(buf)
        return vendor, product

    @property
    def is_open(self) -> bool:
        return self._fd is not None


# =========================================================================
# Real transport: HIDAPI
# =========================================================================
# Alternative backend through libhidapi (hidraw flavour).  Paths are the
# same /dev/hidrawN nodes; vendor/product come from hid_enumerate().

class HidApiTransport(ReportTransport):
    """Report transport using HIDAPI (``hid`` package).

    Requires: ``pip install hid`` + ``apt install libhidapi-hidraw0``
    """

    def __init__(self, path: str):
        if not HIDAPI_AVAILABLE:
            raise ImportError(
                "hid is not installed. Install with: pip install hid\n"
                "Also need libhidapi: apt install libhidapi-hidraw0 (Debian/Ubuntu) "
                "or dnf install hidapi (Fedora)"
            )
        super().__init__(path)
        self._device = None

    def open(self) -> None:
        if not os.path.exists(self.path):
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), self.path)
        try:
            self._device = hidapi.Device(path=self.path.encode())
        except hidapi.HIDException as e:
            if not os.access(self.path, os.R_OK | os.W_OK):
                raise PermissionError(errno.EACCES, os.strerror(errno.EACCES), self.path) from e
            raise OSError(errno.EIO, str(e), self.path) from e
        self._device.nonblocking = False

    def close(self) -> None:
        if self._device is not None:
            try:
                self._device.close()
            except hidapi.HIDException as e:
                log.debug("close %s: %s", self.path, e)
            self._device = None

    def _require_device(self):
        if self._device is None:
            raise OSError(errno.EBADF, "Transport not open", self.path)
        return self._device

    def write(self, data: bytes) -> int:
        try:
            return self._require_device().write(data)
        except hidapi.HIDException as e:
            raise OSError(errno.EIO, str(e), self.path) from e

    def read(self, length: int) -> bytes:
        try:
            data = self._require_device().read(length)
        except hidapi.HIDException as e:
            raise OSError(errno.EIO, str(e), self.path) from e
        return bytes(data) if data else b''

    def device_info(self) -> Tuple[int, int]:
        self._require_device()
        wanted = self.path.encode()
        for info in hidapi.enumerate():
            if info.get('path') == wanted:
                return info['vendor_id'], info['product_id']
        raise OSError(errno.ENODEV, "Device not listed by hid_enumerate", self.path)

    @property
    def is_open(self) -> bool:
        return self._device is not None


TRANSPORTS = {
    "hidraw": HidrawTransport,
    "hidapi": HidApiTransport,
}


def get_transport_factory(name: str):
    """Look up a transport class by backend name.

    Raises:
        ValueError: Unknown backend name.
    """
    try:
        return TRANSPORTS[name]
    except KeyError:
        raise ValueError(
            f"Unknown backend: {name!r} (choose from {', '.join(TRANSPORTS)})"
        ) from None


# =========================================================================
# Report channel
# =========================================================================

def send_report(transport: ReportTransport, report_id: int, payload: bytes) -> int:
    """Write ``report_id + payload`` in one operation.

    Raises:
        ReportIOError: The write failed or was short.
    """
    data = Report(report_id, bytes(payload)).wire
    try:
        written = transport.write(data)
    except OSError as e:
        raise ReportIOError(f"write to {transport.path} failed: {e}") from e
    if written != len(data):
        raise ReportIOError(
            f"short write to {transport.path}: {written} of {len(data)} bytes"
        )
    log.debug("sent report %02x: %s", report_id, bytes(payload).hex(' '))
    return written


def receive_report(transport: ReportTransport, report_id: int,
                   length: int = REPORT_SIZE) -> bytes:
    """Read one report of *length* payload bytes and strip the echoed id.

    Raises:
        ReportIOError: The read failed or returned nothing.
    """
    try:
        data = transport.read(length + 1)
    except OSError as e:
        raise ReportIOError(f"read from {transport.path} failed: {e}") from e
    if not data:
        raise ReportIOError(f"empty read from {transport.path}")
    if data[0] != report_id:
        log.debug("report id %02x echoed as %02x", report_id, data[0])
    log.debug("received report %02x: %s", data[0], bytes(data[1:]).hex(' '))
    return bytes(data[1:])


# =========================================================================
# Device handle
# =========================================================================

class DeviceHandle:
    """An open, identified device and its protocol variant.

    Created by ``device_detector.locate_device``; use as a context manager
    so the device file is closed on every exit path.
    """

    def __init__(self, transport: ReportTransport, variant: ProtocolVariant,
                 entry=None):
        self.transport = transport
        self.variant = variant
        self.entry = entry

    @property
    def path(self) -> str:
        return self.transport.path

    def send(self, report: Report) -> int:
        return send_report(self.transport, report.report_id, report.payload)

    def receive(self, report_id: int, length: int = REPORT_SIZE) -> bytes:
        return receive_report(self.transport, report_id, length)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __repr__(self):
        return f"DeviceHandle({self.path!r}, {self.variant.name})"
