# rclink/app/preferences.py
from __future__ import annotations

import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Dict

import yaml

ONBOARDED = "onboarded"

_log = logging.getLogger(__name__)


class PreferenceStore:
    """
    Tiny YAML-backed boolean preference store (e.g. the one-time onboarding flag).

    Writes go to a temp file in the same directory and are moved into place.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = threading.Lock()

    def get_flag(self, name: str, default: bool = False) -> bool:
        with self._lock:
            value = self._read().get(name, default)
        return value is True

    def set_flag(self, name: str, value: bool) -> None:
        with self._lock:
            data = self._read()
            data[name] = bool(value)
            self._write(data)

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            # a corrupt preference file only resets flags
            _log.warning("PREFERENCES_CORRUPT path=%s error=%s", self.path, e)
            return {}
        return dict(data) if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=".prefs-", suffix=".yml", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(data, f, sort_keys=True)
            os.replace(tmp, self.path)
        except BaseException:
            try:
                os.unlink(tmp)
            except OSError:
                pass
            raise
