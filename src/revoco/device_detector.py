"""
MX-Revolution Device Detector
Finds the wheel-capable Logitech receiver among the HID device files.

Supported devices (variant 1 - MX-Revolution framing):
- Logitech: VID=0x046D, PID=0xC51A  (MX-Revolution, RR41.01_B0025)
- Logitech: VID=0x046D, PID=0xC525  (MX-Revolution, RQR02.00_B0020)
- Logitech: VID=0x046D, PID=0xC526  (MX-Revolution)
- Logitech: VID=0x046D, PID=0xC52B  (Unifying Receiver)
- Logitech: VID=0x046D, PID=0xB007  (MX-Revolution, R0019)

Supported devices (variant 2 - MX-5500 combo framing, experimental):
- Logitech: VID=0x046D, PID=0xC71C  (MX-5500 keyboard/mouse combo)

Device files are probed by path template (``/dev/hidraw%d``) over indices
0-15; the first node whose VID:PID is in the table wins.
"""

import errno
import logging
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .errors import DeviceNotFound, DevicePermissionDenied
from .hid_device import DeviceHandle, HidrawTransport, get_transport_factory
from .protocol import ProtocolVariant

log = logging.getLogger(__name__)

LOGITECH_VID = 0x046D

MAX_DEVICE_INDEX = 16

# Probe order: legacy hiddev, hidraw, then the old flat hiddev location
DEFAULT_PATH_TEMPLATES = (
    "/dev/usb/hiddev%d",
    "/dev/hidraw%d",
    "/dev/hiddev%d",
)

UDEV_RULES_PATH = "/etc/udev/rules.d/99-revoco.rules"


@dataclass(frozen=True)
class DeviceEntry:
    """Registry entry describing a supported receiver."""
    product: str
    variant: ProtocolVariant
    vendor: str = "Logitech"


KNOWN_DEVICES: dict[tuple[int, int], DeviceEntry] = {
    (LOGITECH_VID, 0xC51A): DeviceEntry("MX-Revolution", ProtocolVariant.REVOLUTION),
    (LOGITECH_VID, 0xC525): DeviceEntry("MX-Revolution", ProtocolVariant.REVOLUTION),
    (LOGITECH_VID, 0xC526): DeviceEntry("MX-Revolution", ProtocolVariant.REVOLUTION),
    # Unifying Receiver (added 2015-05-30)
    (LOGITECH_VID, 0xC52B): DeviceEntry("Unifying Receiver", ProtocolVariant.REVOLUTION),
    (LOGITECH_VID, 0xB007): DeviceEntry("MX-Revolution", ProtocolVariant.REVOLUTION),
    # keyboard/mouse combo - experimental
    (LOGITECH_VID, 0xC71C): DeviceEntry("MX-5500", ProtocolVariant.COMBO_5500),
}


@dataclass
class ProbeResult:
    """One probed device file (``revoco --list``)."""
    path: str
    vid: Optional[int] = None
    pid: Optional[int] = None
    entry: Optional[DeviceEntry] = None
    error: str = ""


def lookup_device(vid: int, pid: int) -> Optional[DeviceEntry]:
    """Return the table entry for a VID:PID pair, or None."""
    return KNOWN_DEVICES.get((vid & 0xFFFF, pid & 0xFFFF))


def supported_ids() -> str:
    """``046d:c51a, 046d:c525, ...`` for error messages."""
    return ", ".join(f"{vid:04x}:{pid:04x}" for vid, pid in KNOWN_DEVICES)


# =========================================================================
# Path templates
# =========================================================================

def expand_template(template: str, count: int = MAX_DEVICE_INDEX) -> List[str]:
    """Concrete paths for a template; a template without ``%d`` is one path."""
    if "%d" not in template:
        return [template]
    return [template % i for i in range(count)]


def build_search_path(device_template: Optional[str] = None) -> List[str]:
    """Templates to try, user template first, defaults after."""
    templates = []
    if device_template:
        templates.append(device_template)
    for template in DEFAULT_PATH_TEMPLATES:
        if template not in templates:
            templates.append(template)
    return templates


def _candidates(templates: Iterable[str]):
    for template in templates:
        yield from expand_template(template)


# =========================================================================
# Locate
# =========================================================================

def locate_device(templates: Sequence[str],
                  transport_factory=HidrawTransport) -> DeviceHandle:
    """Open the first supported device behind *templates*.

    Templates are tried in order, each over indices 0-15.  Non-matching
    device files are closed again; only the returned one stays open.

    Raises:
        DevicePermissionDenied: No match and a candidate could not be opened
            for lack of permission.
        DeviceNotFound: No match otherwise.
    """
    probed: List[str] = []
    denied: List[str] = []
    opened_any = False

    for path in _candidates(templates):
        probed.append(path)
        transport = transport_factory(path)
        try:
            transport.open()
        except FileNotFoundError:
            continue
        except PermissionError:
            log.debug("%s: permission denied", path)
            denied.append(path)
            continue
        except OSError as e:
            if e.errno in (errno.EACCES, errno.EPERM):
                denied.append(path)
            else:
                log.debug("%s: %s", path, e)
            continue

        opened_any = True
        try:
            vid, pid = transport.device_info()
        except OSError as e:
            log.debug("%s: no device info (%s)", path, e)
            transport.close()
            continue

        entry = lookup_device(vid, pid)
        if entry is None:
            log.debug("%s: %04x:%04x not supported", path, vid & 0xFFFF, pid & 0xFFFF)
            transport.close()
            continue

        log.info("Found %s %s at %s (%04x:%04x, variant %d)",
                 entry.vendor, entry.product, path, vid & 0xFFFF, pid & 0xFFFF,
                 entry.variant.prefix)
        return DeviceHandle(transport, entry.variant, entry)

    if denied:
        # hiddev nodes never identify, so point the hint at a hidraw node
        hidraw = [path for path in denied if "hidraw" in path]
        raise DevicePermissionDenied((hidraw or denied)[0], probed=probed)
    if opened_any:
        raise DeviceNotFound(
            f"No Logitech MX-Revolution ({supported_ids()}) found.",
            probed=probed, device_files_present=True,
        )
    raise DeviceNotFound("Device not found.", probed=probed)


def find_device(device_template: Optional[str] = None,
                backend: str = "hidraw") -> DeviceHandle:
    """Locate the device with the default fallback templates."""
    factory = get_transport_factory(backend)
    return locate_device(build_search_path(device_template), factory)


def scan_devices(templates: Sequence[str],
                 transport_factory=HidrawTransport) -> List[ProbeResult]:
    """Probe every existing candidate without stopping at the first match."""
    results = []
    for path in _candidates(templates):
        transport = transport_factory(path)
        try:
            transport.open()
        except FileNotFoundError:
            continue
        except OSError as e:
            results.append(ProbeResult(path, error=e.strerror or str(e)))
            continue
        try:
            vid, pid = transport.device_info()
            vid, pid = vid & 0xFFFF, pid & 0xFFFF
            results.append(ProbeResult(path, vid, pid, lookup_device(vid, pid)))
        except OSError as e:
            results.append(ProbeResult(path, error=f"no device info ({e.strerror or e})"))
        finally:
            transport.close()
    return results


def format_probe(result: ProbeResult) -> str:
    """One ``--list`` line."""
    if result.error:
        return f"  {result.path}: {result.error}"
    vid_pid = f"[{result.vid:04x}:{result.pid:04x}]"
    if result.entry:
        return (f"* {result.path}: {result.entry.vendor} {result.entry.product} "
                f"{vid_pid} (variant {result.entry.variant.prefix})")
    return f"  {result.path}: {vid_pid} not supported"


# =========================================================================
# udev rules
# =========================================================================

def udev_rules() -> str:
    """udev rules granting non-root access to the supported receivers."""
    lines = ["# Logitech MX-Revolution wheel control - auto-generated by revoco --setup-udev"]
    for (vid, pid), entry in KNOWN_DEVICES.items():
        lines.append(
            f'# {entry.vendor} {entry.product}\n'
            f'KERNEL=="hidraw*", '
            f'ATTRS{{idVendor}}=="{vid:04x}", '
            f'ATTRS{{idProduct}}=="{pid:04x}", '
            f'MODE="0666"'
        )
    return "\n\n".join(lines) + "\n"
