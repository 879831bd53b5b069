"""Mock tests for the HID report layer (transports, channel, handle).

No real hardware required — os/fcntl calls and the hid module are mocked.
"""

import errno
import os
import struct
from unittest.mock import MagicMock, patch

import pytest

from revoco.errors import ReportIOError
from revoco.hid_device import (
    HIDIOCGRAWINFO,
    DeviceHandle,
    HidApiTransport,
    HidrawTransport,
    ReportTransport,
    get_transport_factory,
    receive_report,
    send_report,
)
from revoco.protocol import ProtocolVariant, Report


def _make_mock_transport() -> MagicMock:
    """Create a MagicMock that satisfies the ReportTransport interface."""
    t = MagicMock(spec=ReportTransport)
    t.path = "/dev/hidraw3"
    t.is_open = True
    return t


def _fill_devinfo(vid, pid, bustype=3):
    def ioctl(fd, request, buf, mutate=True):
        struct.pack_into("=IHH", buf, 0, bustype, vid, pid)
        return 0
    return ioctl


# =========================================================================
# ioctl number
# =========================================================================

class TestIoctlNumber:

    def test_hidiocgrawinfo(self):
        """_IOR('H', 0x03, struct hidraw_devinfo) from linux/hidraw.h."""
        assert HIDIOCGRAWINFO == 0x80084803


# =========================================================================
# HidrawTransport
# =========================================================================

class TestHidrawTransport:

    @patch('revoco.hid_device.os.open', return_value=7)
    def test_open_read_write(self, mock_open):
        t = HidrawTransport("/dev/hidraw0")
        t.open()
        mock_open.assert_called_once_with("/dev/hidraw0", os.O_RDWR)
        assert t.is_open

    @patch('revoco.hid_device.os.open', side_effect=PermissionError(errno.EACCES, "denied"))
    def test_open_permission_error_propagates(self, _):
        with pytest.raises(PermissionError):
            HidrawTransport("/dev/hidraw0").open()

    @patch('revoco.hid_device.os.close')
    @patch('revoco.hid_device.os.open', return_value=7)
    def test_close_twice(self, _, mock_close):
        t = HidrawTransport("/dev/hidraw0")
        t.open()
        t.close()
        t.close()
        mock_close.assert_called_once_with(7)
        assert not t.is_open

    @patch('revoco.hid_device.os.write', return_value=7)
    @patch('revoco.hid_device.os.open', return_value=7)
    def test_write(self, _, mock_write):
        t = HidrawTransport("/dev/hidraw0")
        t.open()
        assert t.write(b'\x10' + b'\x00' * 6) == 7
        mock_write.assert_called_once_with(7, b'\x10' + b'\x00' * 6)

    @patch('revoco.hid_device.os.read', return_value=b'\x10\x01\x81\x08\x00\x00\x01')
    @patch('revoco.hid_device.os.open', return_value=7)
    def test_read(self, _, mock_read):
        t = HidrawTransport("/dev/hidraw0")
        t.open()
        assert t.read(7) == b'\x10\x01\x81\x08\x00\x00\x01'
        mock_read.assert_called_once_with(7, 7)

    def test_io_before_open(self):
        t = HidrawTransport("/dev/hidraw0")
        with pytest.raises(OSError):
            t.write(b'\x10')
        with pytest.raises(OSError):
            t.read(7)

    @patch('revoco.hid_device.fcntl.ioctl')
    @patch('revoco.hid_device.os.open', return_value=7)
    def test_device_info(self, _, mock_ioctl):
        mock_ioctl.side_effect = _fill_devinfo(0x046D, 0xC51A)
        t = HidrawTransport("/dev/hidraw0")
        t.open()
        assert t.device_info() == (0x046D, 0xC51A)
        assert mock_ioctl.call_args[0][1] == HIDIOCGRAWINFO

    @patch('revoco.hid_device.fcntl.ioctl', side_effect=OSError(errno.ENOTTY, "ioctl"))
    @patch('revoco.hid_device.os.open', return_value=7)
    def test_device_info_on_hiddev_node(self, *_):
        t = HidrawTransport("/dev/usb/hiddev0")
        t.open()
        with pytest.raises(OSError):
            t.device_info()


# =========================================================================
# HidApiTransport
# =========================================================================

class TestHidApiTransport:

    def test_requires_hid_module(self):
        with patch('revoco.hid_device.HIDAPI_AVAILABLE', False):
            with pytest.raises(ImportError):
                HidApiTransport("/dev/hidraw0")

    def test_open_by_path(self, mock_hidapi):
        with patch('revoco.hid_device.os.path.exists', return_value=True):
            t = HidApiTransport("/dev/hidraw2")
            t.open()
        mock_hidapi.Device.assert_called_once_with(path=b"/dev/hidraw2")
        assert t.is_open

    def test_open_missing(self, mock_hidapi):
        with patch('revoco.hid_device.os.path.exists', return_value=False):
            with pytest.raises(FileNotFoundError):
                HidApiTransport("/dev/hidraw2").open()
        mock_hidapi.Device.assert_not_called()

    def test_open_denied(self, mock_hidapi):
        mock_hidapi.Device.side_effect = mock_hidapi.HIDException("unable to open device")
        with patch('revoco.hid_device.os.path.exists', return_value=True), \
             patch('revoco.hid_device.os.access', return_value=False):
            with pytest.raises(PermissionError):
                HidApiTransport("/dev/hidraw2").open()

    def test_open_other_failure(self, mock_hidapi):
        mock_hidapi.Device.side_effect = mock_hidapi.HIDException("unable to open device")
        with patch('revoco.hid_device.os.path.exists', return_value=True), \
             patch('revoco.hid_device.os.access', return_value=True):
            with pytest.raises(OSError) as exc:
                HidApiTransport("/dev/hidraw2").open()
        assert not isinstance(exc.value, PermissionError)

    def test_write_read(self, mock_hidapi):
        device = mock_hidapi.Device.return_value
        device.write.return_value = 7
        device.read.return_value = b'\x10\x01\x81\x0d\x50\x00\x50'
        with patch('revoco.hid_device.os.path.exists', return_value=True):
            t = HidApiTransport("/dev/hidraw2")
            t.open()
        assert t.write(b'\x10\x01\x81\x0d\x00\x00\x00') == 7
        assert t.read(7) == b'\x10\x01\x81\x0d\x50\x00\x50'
        device.read.assert_called_once_with(7)

    def test_write_error_becomes_oserror(self, mock_hidapi):
        mock_hidapi.Device.return_value.write.side_effect = mock_hidapi.HIDException("gone")
        with patch('revoco.hid_device.os.path.exists', return_value=True):
            t = HidApiTransport("/dev/hidraw2")
            t.open()
        with pytest.raises(OSError):
            t.write(b'\x10')

    def test_device_info_from_enumerate(self, mock_hidapi):
        mock_hidapi.enumerate.return_value = [
            {'path': b'/dev/hidraw1', 'vendor_id': 0x046D, 'product_id': 0xC52B},
            {'path': b'/dev/hidraw2', 'vendor_id': 0x046D, 'product_id': 0xC71C},
        ]
        with patch('revoco.hid_device.os.path.exists', return_value=True):
            t = HidApiTransport("/dev/hidraw2")
            t.open()
        assert t.device_info() == (0x046D, 0xC71C)

    def test_device_info_not_listed(self, mock_hidapi):
        mock_hidapi.enumerate.return_value = []
        with patch('revoco.hid_device.os.path.exists', return_value=True):
            t = HidApiTransport("/dev/hidraw2")
            t.open()
        with pytest.raises(OSError):
            t.device_info()

    def test_close(self, mock_hidapi):
        with patch('revoco.hid_device.os.path.exists', return_value=True):
            t = HidApiTransport("/dev/hidraw2")
            t.open()
        t.close()
        mock_hidapi.Device.return_value.close.assert_called_once()
        assert not t.is_open


class TestTransportFactory:

    def test_known(self):
        assert get_transport_factory("hidraw") is HidrawTransport
        assert get_transport_factory("hidapi") is HidApiTransport

    def test_unknown(self):
        with pytest.raises(ValueError):
            get_transport_factory("usb")


# =========================================================================
# Report channel
# =========================================================================

class TestSendReport:

    def test_prepends_report_id(self):
        t = _make_mock_transport()
        t.write.return_value = 7
        send_report(t, 0x10, bytes([1, 0x80, 0x56, 0x81, 0, 0]))
        t.write.assert_called_once_with(bytes([0x10, 1, 0x80, 0x56, 0x81, 0, 0]))

    def test_write_error(self):
        t = _make_mock_transport()
        t.write.side_effect = OSError(errno.EIO, "Input/output error")
        with pytest.raises(ReportIOError):
            send_report(t, 0x10, b'\x00' * 6)

    def test_short_write(self):
        t = _make_mock_transport()
        t.write.return_value = 3
        with pytest.raises(ReportIOError, match="short write"):
            send_report(t, 0x10, b'\x00' * 6)


class TestReceiveReport:

    def test_strips_report_id(self):
        t = _make_mock_transport()
        t.read.return_value = b'\x10\x01\x81\x08\x00\x00\x01'
        assert receive_report(t, 0x10, 6) == b'\x01\x81\x08\x00\x00\x01'
        t.read.assert_called_once_with(7)

    def test_read_error(self):
        t = _make_mock_transport()
        t.read.side_effect = OSError(errno.EIO, "Input/output error")
        with pytest.raises(ReportIOError):
            receive_report(t, 0x10, 6)

    def test_empty_read(self):
        t = _make_mock_transport()
        t.read.return_value = b''
        with pytest.raises(ReportIOError):
            receive_report(t, 0x10, 6)

    def test_other_report_id_still_returned(self):
        t = _make_mock_transport()
        t.read.return_value = b'\x11\x01\x81\x08\x00\x00\x00'
        assert receive_report(t, 0x10, 6) == b'\x01\x81\x08\x00\x00\x00'


# =========================================================================
# DeviceHandle
# =========================================================================

class TestDeviceHandle:

    def test_send_uses_report(self):
        t = _make_mock_transport()
        t.write.return_value = 7
        handle = DeviceHandle(t, ProtocolVariant.REVOLUTION)
        handle.send(Report(0x10, b'\x01\x81\x08\x00\x00\x00'))
        t.write.assert_called_once_with(b'\x10\x01\x81\x08\x00\x00\x00')

    def test_send_writes_wire_bytes(self):
        t = _make_mock_transport()
        t.write.return_value = 7
        report = Report(0x10, b'\x02\x80\x56\x02\x00\x00')
        DeviceHandle(t, ProtocolVariant.COMBO_5500).send(report)
        t.write.assert_called_once_with(report.wire)

    def test_context_manager_closes(self):
        t = _make_mock_transport()
        with DeviceHandle(t, ProtocolVariant.COMBO_5500) as handle:
            assert handle.variant is ProtocolVariant.COMBO_5500
            assert handle.path == "/dev/hidraw3"
        t.close.assert_called_once()

    def test_closes_on_error(self):
        t = _make_mock_transport()
        with pytest.raises(RuntimeError):
            with DeviceHandle(t, ProtocolVariant.REVOLUTION):
                raise RuntimeError("boom")
        t.close.assert_called_once()
