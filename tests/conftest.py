"""Shared fakes: an in-memory bus of HID device files.

No real hardware required — transports created by ``FakeBus`` serve
vid/pid and queued answers from a dict.
"""
from collections import deque

import pytest

from revoco.hid_device import ReportTransport


class FakeTransport(ReportTransport):
    """ReportTransport backed by a FakeBus node."""

    def __init__(self, bus, path):
        super().__init__(path)
        self.bus = bus
        self._open = False

    def open(self):
        self.bus.probed.append(self.path)
        node = self.bus.nodes.get(self.path)
        if node is None:
            raise FileNotFoundError(2, "No such file or directory", self.path)
        if isinstance(node, Exception):
            raise node
        self._open = True
        self.bus.opened.append(self.path)

    def close(self):
        if self._open:
            self.bus.closed.append(self.path)
        self._open = False

    def write(self, data):
        if self.bus.write_error is not None:
            raise self.bus.write_error
        self.bus.written.append(bytes(data))
        return len(data) if self.bus.write_result is None else self.bus.write_result

    def read(self, length):
        if not self.bus.answers:
            raise OSError(5, "Input/output error", self.path)
        answer = self.bus.answers.popleft()
        if isinstance(answer, Exception):
            raise answer
        return answer[:length]

    def device_info(self):
        node = self.bus.nodes[self.path]
        if node == "noinfo":
            raise OSError(25, "Inappropriate ioctl for device", self.path)
        return node

    @property
    def is_open(self):
        return self._open


class FakeBus:
    """Device files by path.

    Node values: ``(vid, pid)``, an exception raised on open, or
    ``"noinfo"`` for a node that opens but fails identification.
    """

    def __init__(self, nodes=None, answers=()):
        self.nodes = dict(nodes or {})
        self.answers = deque(answers)
        self.probed = []
        self.opened = []
        self.closed = []
        self.written = []
        self.write_error = None
        self.write_result = None

    def __call__(self, path):
        return FakeTransport(self, path)

    def queue(self, *answers):
        self.answers.extend(answers)


@pytest.fixture
def fake_bus():
    """Factory for FakeBus instances."""
    return FakeBus
