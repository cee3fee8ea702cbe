from __future__ import annotations

import pytest

from rclink.model.device import DeviceInfo
from rclink.transport.errors import TransportOpenError


def test_adapter_open_returns_open_handle(fake_adapter):
    h = fake_adapter.open(DeviceInfo("/dev/fake0", "HC-05"))

    assert h.is_open()
    assert fake_adapter.handles == [h]
    assert h.close_calls == 0


def test_adapter_open_closes_handle_on_failure(fake_adapter_cls):
    adapter = fake_adapter_cls(open_results=[TransportOpenError("port busy")])

    with pytest.raises(TransportOpenError, match="port busy"):
        adapter.open(DeviceInfo("/dev/fake0", "HC-05"))

    assert adapter.handles[0].close_calls == 1
    assert adapter.events == [("close", "/dev/fake0")]


def test_adapter_open_raises_open_error_even_if_close_fails(fake_adapter_cls):
    adapter = fake_adapter_cls(open_results=[TransportOpenError("port busy")])
    adapter.close_error = OSError("close failed")

    with pytest.raises(TransportOpenError):
        adapter.open(DeviceInfo("/dev/fake0", "HC-05"))

    assert adapter.handles[0].close_calls == 1


def test_handle_context_manager_closes(fake_adapter):
    with fake_adapter.create(DeviceInfo("/dev/fake0", "HC-05")) as h:
        assert h.is_open()
    assert h.closed
