from __future__ import annotations

import pytest

from rclink.transport.errors import TransportError
from rclink.transport.registry import AdapterRegistry
from rclink.transport.rfcomm import RfcommAdapter
from rclink.transport.serial_port import SerialPortAdapter


def test_default_registry_drivers():
    reg = AdapterRegistry.default()
    assert reg.drivers() == ["rfcomm", "serial"]
    assert reg.get_class("serial") is SerialPortAdapter
    assert reg.get_class("RFCOMM") is RfcommAdapter


def test_create_passes_params():
    adapter = AdapterRegistry.default().create("serial", baudrate=38400, aliases={"/dev/rfcomm0": "HC-05"})
    assert isinstance(adapter, SerialPortAdapter)
    assert adapter.baudrate == 38400
    assert adapter.aliases == {"/dev/rfcomm0": "HC-05"}


def test_case_insensitive_registration(fake_adapter_cls):
    reg = AdapterRegistry({"Fake": fake_adapter_cls})
    assert reg.has("fake")
    assert reg.has("FAKE")
    assert isinstance(reg.create("fake"), fake_adapter_cls)


def test_unknown_driver_raises():
    reg = AdapterRegistry.default()
    assert not reg.has("usb")
    with pytest.raises(TransportError):
        reg.get_class("usb")
    with pytest.raises(TransportError):
        reg.create("usb")
