from __future__ import annotations

import json

import pytest

from rclink.app.authorization import PortAccessAuthorization, StaticAuthorization
from rclink.app.config import AdapterConfig, RcLinkConfig
from rclink.app.runner import create_adapter, start_run
from rclink.core.errors import ConfigError
from rclink.runtime.state import ConnectionState
from rclink.transport.rfcomm import RfcommAdapter
from rclink.transport.serial_port import SerialPortAdapter


def _cfg(tmp_path, **kw) -> RcLinkConfig:
    kw.setdefault("preferences_path", str(tmp_path / "prefs.yml"))
    kw.setdefault("backoff_s", 0.01)
    return RcLinkConfig(**kw)


def test_create_adapter_from_config(tmp_path):
    serial_adapter = create_adapter(_cfg(tmp_path, adapter=AdapterConfig("serial", {"baudrate": 38400})))
    assert isinstance(serial_adapter, SerialPortAdapter)
    assert serial_adapter.baudrate == 38400

    bt_adapter = create_adapter(_cfg(tmp_path, adapter=AdapterConfig("rfcomm", {"channel": 3})))
    assert isinstance(bt_adapter, RfcommAdapter)
    assert bt_adapter.channel == 3


def test_unknown_driver_is_config_error(tmp_path):
    with pytest.raises(ConfigError) as ei:
        create_adapter(_cfg(tmp_path, adapter=AdapterConfig("usb", {})))
    assert "rfcomm" in ei.value.hint and "serial" in ei.value.hint


def test_bad_params_are_config_error(tmp_path):
    with pytest.raises(ConfigError):
        create_adapter(_cfg(tmp_path, adapter=AdapterConfig("serial", {"port": "COM3"})))
    with pytest.raises(ConfigError):
        create_adapter(_cfg(tmp_path, adapter=AdapterConfig("rfcomm", {"channel": "one"})))


def test_start_run_wires_controller(tmp_path, fake_adapter):
    cfg = _cfg(tmp_path, target_name="hc-05", max_attempts=2, history_limit=4)
    run = start_run(cfg, adapter=fake_adapter)
    try:
        c = run.controller
        assert c.adapter is fake_adapter
        assert (c.target_name, c.max_attempts, c.backoff_s, c.history_limit) == ("hc-05", 2, 0.01, 4)
        assert isinstance(run.authorization, PortAccessAuthorization)
        assert run.preferences.path == tmp_path / "prefs.yml"
        assert run.cmd_sink is None
    finally:
        run.close()

    with pytest.raises(RuntimeError):
        run.controller.connect()


def test_trace_file_records_commands(tmp_path, fake_adapter):
    trace = tmp_path / "trace" / "cmds.jsonl"
    run = start_run(_cfg(tmp_path), adapter=fake_adapter, authorization=StaticAuthorization(), trace_path=trace)
    try:
        assert run.controller.connect().result(timeout=2.0).connection is ConnectionState.CONNECTED
        run.controller.send(ord("F")).result(timeout=2.0)
    finally:
        run.close()

    events = [json.loads(line) for line in trace.read_text(encoding="utf-8").splitlines()]
    pairs = [(e["name"], e["kind"]) for e in events]
    assert ("CONNECT", "ok") in pairs
    assert ("F", "send") in pairs and ("F", "ok") in pairs
    # shutdown stops the car
    assert ("S", "ok") in pairs
    assert all("ts_utc" in e for e in events)
