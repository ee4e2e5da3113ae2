"""Simple JSON-based config store."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from localization import DEFAULT_LANGUAGE, normalize_language

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "screen_narrator"

DEFAULT_HOTKEY = "Key.f8"
DEFAULT_MODEL = "qwen-vl-max"


@dataclass(frozen=True)
class AppConfig:
    """Settings read once when a capture session starts."""

    language: str = DEFAULT_LANGUAGE
    api_key: str = ""
    auto_confirm: bool = False
    speech_rate: float = 1.0
    hotkey: str = DEFAULT_HOTKEY
    model: str = DEFAULT_MODEL

    def __repr__(self) -> str:
        masked = "***" if self.api_key else "''"
        return (
            f"AppConfig(language={self.language!r}, api_key={masked}, "
            f"auto_confirm={self.auto_confirm!r}, speech_rate={self.speech_rate!r}, "
            f"hotkey={self.hotkey!r}, model={self.model!r})"
        )


class JsonConfigStore:
    def __init__(self, path: Path | None = None) -> None:
        self._path = path or CONFIG_DIR / "config.json"
        self._path.parent.mkdir(parents=True, exist_ok=True)

    def get_api_key(self) -> str:
        data = self._read_all()
        return str(data.get("api_key", ""))

    def set_api_key(self, key: str) -> None:
        self._update("api_key", key)

    def get_hotkey(self) -> str:
        data = self._read_all()
        return str(data.get("hotkey", DEFAULT_HOTKEY))

    def set_hotkey(self, hotkey: str) -> None:
        self._update("hotkey", hotkey)

    def get_language(self) -> str:
        data = self._read_all()
        return normalize_language(str(data.get("language", DEFAULT_LANGUAGE)))

    def set_language(self, code: str) -> None:
        self._update("language", normalize_language(code))

    def get_auto_confirm(self) -> bool:
        data = self._read_all()
        value = data.get("auto_confirm", False)
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    def set_auto_confirm(self, enabled: bool) -> None:
        self._update("auto_confirm", bool(enabled))

    def get_speech_rate(self) -> float:
        data = self._read_all()
        try:
            rate = float(data.get("speech_rate", 1.0))
        except (TypeError, ValueError):
            return 1.0
        return rate if rate > 0 else 1.0

    def set_speech_rate(self, rate: float) -> None:
        self._update("speech_rate", float(rate))

    def get_model(self) -> str:
        data = self._read_all()
        return str(data.get("model", DEFAULT_MODEL)) or DEFAULT_MODEL

    def snapshot(self) -> AppConfig:
        return AppConfig(
            language=self.get_language(),
            api_key=self.get_api_key(),
            auto_confirm=self.get_auto_confirm(),
            speech_rate=self.get_speech_rate(),
            hotkey=self.get_hotkey(),
            model=self.get_model(),
        )

    def _update(self, key: str, value: object) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def _read_all(self) -> dict:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable config %s: %s", self._path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: dict) -> None:
        self._path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
