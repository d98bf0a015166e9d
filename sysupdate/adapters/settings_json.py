from __future__ import annotations
import json, os
from typing import Any, Dict

from sysupdate.domain.ports import SettingsPort


class JsonSettingsStore(SettingsPort):
    """System settings persisted as a small JSON document."""

    def __init__(self, path: str) -> None:
        self.path = str(path)

    # ---- current_version ----
    def get_current_version(self, default: str = "1.0.0") -> str:
        value = self._load().get("current_version")
        text = str(value).strip() if value is not None else ""
        return text or default

    def set_current_version(self, version: str) -> None:
        data = self._load()
        data["current_version"] = str(version)
        self._save(data)

    # ---- JSON file ----
    def _load(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)
        return data if isinstance(data, dict) else {}

    def _save(self, data: Dict[str, Any]) -> None:
        os.makedirs(os.path.dirname(os.path.abspath(self.path)), exist_ok=True)
        # atomic replace
        tmp_path = f"{self.path}.tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
        os.replace(tmp_path, self.path)
