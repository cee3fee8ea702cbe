from __future__ import annotations

from pathlib import Path

import pytest

import rclink.app.config as config_mod
from rclink.app.config import AdapterConfig, RcLinkConfig, load_config
from rclink.core.errors import ConfigError


def _write(tmp_path: Path, text: str) -> Path:
    p = tmp_path / "config.yml"
    p.write_text(text, encoding="utf-8")
    return p


def test_defaults():
    cfg = RcLinkConfig()
    assert cfg.target_name == "HC-05"
    assert cfg.max_attempts == 3
    assert cfg.backoff_s == 5.0
    assert cfg.history_limit == 10
    assert cfg.disconnect_on_send_error is False
    assert cfg.adapter == AdapterConfig(driver="serial", params={})


def test_load_full_file(tmp_path):
    p = _write(
        tmp_path,
        """
target_name: "My HC-05"
max_attempts: 5
backoff_s: 2
history_limit: 20
disconnect_on_send_error: true
preferences_path: prefs.yml
adapter:
  driver: rfcomm
  params:
    channel: 1
    devices:
      - {address: "98:D3:31:F5:1A:2B", name: HC-05}
""",
    )
    cfg = load_config(p)

    assert cfg.target_name == "My HC-05"
    assert cfg.max_attempts == 5
    assert cfg.backoff_s == 2.0 and isinstance(cfg.backoff_s, float)
    assert cfg.history_limit == 20
    assert cfg.disconnect_on_send_error is True
    assert cfg.adapter.driver == "rfcomm"
    assert cfg.adapter.params["devices"][0]["name"] == "HC-05"
    assert cfg.resolved_preferences_path() == Path("prefs.yml")


def test_empty_file_gives_defaults(tmp_path):
    assert load_config(_write(tmp_path, "")) == RcLinkConfig()


def test_missing_explicit_path_raises(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_config(tmp_path / "nope.yml")
    assert ei.value.hint


def test_missing_default_path_gives_defaults(tmp_path, monkeypatch):
    monkeypatch.setattr(config_mod, "DEFAULT_CONFIG_PATH", tmp_path / "absent.yml")
    assert load_config() == RcLinkConfig()


@pytest.mark.parametrize(
    "text",
    [
        "max_attempts: 0\n",
        "backoff_s: -1\n",
        "history_limit: 0\n",
        "target_name: '  '\n",
        "max_attempts: three\n",
        "max_attempts: true\n",
        "disconnect_on_send_error: 1\n",
        "colour: red\n",
        "adapter: serial\n",
        "adapter: {driver: serial, port: COM3}\n",
        "adapter: {driver: serial, params: [1, 2]}\n",
        "- a\n- b\n",
        "target_name: [unclosed\n",
    ],
)
def test_invalid_config_raises(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(_write(tmp_path, text))


def test_unknown_key_error_lists_keys(tmp_path):
    with pytest.raises(ConfigError) as ei:
        load_config(_write(tmp_path, "colour: red\n"))
    assert ei.value.details == {"unknown": ["colour"]}
    assert "target_name" in ei.value.hint
