from __future__ import annotations

import yaml

from rclink.app.preferences import ONBOARDED, PreferenceStore


def test_missing_file_reads_default(tmp_path):
    store = PreferenceStore(tmp_path / "prefs.yml")
    assert store.get_flag(ONBOARDED) is False
    assert store.get_flag(ONBOARDED, default=True) is True


def test_set_flag_persists(tmp_path):
    path = tmp_path / "nested" / "prefs.yml"
    PreferenceStore(path).set_flag(ONBOARDED, True)

    assert PreferenceStore(path).get_flag(ONBOARDED) is True
    assert yaml.safe_load(path.read_text(encoding="utf-8")) == {ONBOARDED: True}
    # temp files are moved into place
    assert [p.name for p in path.parent.iterdir()] == ["prefs.yml"]


def test_other_flags_are_kept(tmp_path):
    store = PreferenceStore(tmp_path / "prefs.yml")
    store.set_flag("a", True)
    store.set_flag(ONBOARDED, True)
    store.set_flag("a", False)

    assert store.get_flag("a") is False
    assert store.get_flag(ONBOARDED) is True


def test_non_bool_values_are_false(tmp_path):
    path = tmp_path / "prefs.yml"
    path.write_text("onboarded: 'yes please'\n", encoding="utf-8")
    assert PreferenceStore(path).get_flag(ONBOARDED) is False


def test_corrupt_file_resets(tmp_path):
    path = tmp_path / "prefs.yml"
    path.write_text("onboarded: [unclosed\n", encoding="utf-8")
    store = PreferenceStore(path)

    assert store.get_flag(ONBOARDED) is False
    store.set_flag(ONBOARDED, True)
    assert store.get_flag(ONBOARDED) is True
