from __future__ import annotations

import threading
import time
from typing import Callable, List, Optional

import pytest

from rclink.model.device import DeviceInfo
from rclink.transport.base import TransportAdapter, TransportHandle
from rclink.transport.errors import TransportIOError, TransportOpenError


class FakeHandle(TransportHandle):
    def __init__(self, adapter: "FakeAdapter", device: DeviceInfo):
        self.adapter = adapter
        self.device = device
        self.opened = False
        self.closed = False
        self.close_calls = 0
        self.flush_calls = 0

    def open(self) -> None:
        a = self.adapter
        with a.lock:
            a.open_calls += 1
            result = a.open_results.pop(0) if a.open_results else None
            block = a.block_opens > 0
            if block:
                a.block_opens -= 1

        # blocks until closed from another thread (cancellation)
        while block and not self.closed:
            time.sleep(0.005)

        if self.closed:
            raise TransportOpenError("closed while opening")
        if result is not None:
            raise result
        self.opened = True

    def close(self) -> None:
        self.close_calls += 1
        self.closed = True
        self.opened = False
        self.adapter.events.append(("close", self.device.id))
        if self.adapter.close_error is not None:
            raise self.adapter.close_error

    def is_open(self) -> bool:
        return self.opened and not self.closed

    def write(self, data: bytes) -> int:
        self.adapter.events.append(("write", bytes(data)))
        if self.adapter.write_gate is not None:
            # a slow link: the write blocks until the test opens the gate
            self.adapter.write_gate.wait(5.0)
        if self.adapter.write_error is not None:
            raise self.adapter.write_error
        self.adapter.writes.append(bytes(data))
        return len(data)

    def flush(self) -> None:
        self.flush_calls += 1


class FakeAdapter(TransportAdapter):
    """Scriptable adapter: open_results holds None (success) or an exception per open() call."""

    driver = "fake"

    def __init__(
        self,
        devices: Optional[List[DeviceInfo]] = None,
        open_results: Optional[list] = None,
        discovery_error: Optional[Exception] = None,
    ):
        self.devices = list(devices) if devices is not None else [DeviceInfo("/dev/fake0", "HC-05")]
        self.open_results = list(open_results or [])
        self.discovery_error = discovery_error
        self.discovery_gate: Optional[threading.Event] = None
        self.discovery_calls = 0
        self.block_opens = 0
        self.open_calls = 0
        self.handles: List[FakeHandle] = []
        self.writes: List[bytes] = []
        self.events: list = []
        self.write_error: Optional[Exception] = None
        self.write_gate: Optional[threading.Event] = None
        self.close_error: Optional[Exception] = None
        self.lock = threading.Lock()

    def list_bonded_devices(self) -> List[DeviceInfo]:
        with self.lock:
            self.discovery_calls += 1
        if self.discovery_gate is not None:
            self.discovery_gate.wait(5.0)
        if self.discovery_error is not None:
            raise self.discovery_error
        return list(self.devices)

    def create(self, device: DeviceInfo) -> FakeHandle:
        h = FakeHandle(self, device)
        self.handles.append(h)
        return h


def wait_for(pred: Callable[[], bool], timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if pred():
            return True
        time.sleep(0.002)
    return pred()


@pytest.fixture
def fake_adapter_cls():
    return FakeAdapter


@pytest.fixture
def fake_adapter():
    return FakeAdapter()


@pytest.fixture
def io_error():
    return TransportIOError


@pytest.fixture
def waiter():
    return wait_for
