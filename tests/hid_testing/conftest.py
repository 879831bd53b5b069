"""Fixtures for the transport tests: a patched hidapi module."""
from unittest.mock import MagicMock, patch

import pytest


class FakeHIDException(Exception):
    """Stand-in for hid.HIDException."""


@pytest.fixture
def mock_hidapi():
    """Patch revoco.hid_device so HidApiTransport sees a fake ``hid`` module."""
    module = MagicMock()
    module.HIDException = FakeHIDException
    with patch('revoco.hid_device.HIDAPI_AVAILABLE', True), \
         patch('revoco.hid_device.hidapi', module, create=True):
        yield module
