from __future__ import annotations

import json
import logging
import os
import re
import threading
from pathlib import Path

from pydantic import ValidationError

from ..models.settings import (
    AIProvider,
    AISettings,
    ConnectivitySettings,
    PromptSettings,
    SettingsBundle,
)

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_\-]+$")


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name, "").strip().lower()
    if not raw:
        return default
    return raw in {"1", "true", "yes", "on"}


class FileManager:
    """Key/value text storage backed by one JSON file per key.

    Every ``set`` overwrites the whole file, so a write replaces the previous
    value of that key in one step.
    """

    SETTINGS_KEY = "settings"

    def __init__(self, base_dir: Path):
        self._lock = threading.RLock()
        self.base = Path(base_dir).expanduser().resolve()
        self.base.mkdir(parents=True, exist_ok=True)
        self.settings_file = self._key_path(self.SETTINGS_KEY)
        if not self.settings_file.exists():
            self._write_json(self.settings_file, self._build_default_settings().model_dump(mode="json"))

    def _key_path(self, key: str) -> Path:
        if not _KEY_PATTERN.match(key or ""):
            raise ValueError(f"invalid storage key: {key!r}")
        return self.base / f"{key}.json"

    def get(self, key: str) -> str | None:
        path = self._key_path(key)
        with self._lock:
            if not path.exists():
                return None
            try:
                return path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.warning("Failed to read %s: %s", path, exc)
                return None

    def set(self, key: str, value: str) -> None:
        path = self._key_path(key)
        with self._lock:
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)

    def _read_json(self, path: Path) -> dict:
        if not path.exists():
            return {}
        try:
            text = path.read_text(encoding="utf-8").strip()
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Failed to read %s: %s", path, exc)
            return {}
        if not text:
            return {}
        try:
            obj = json.loads(text)
            if isinstance(obj, dict):
                return obj
            return {}
        except json.JSONDecodeError:
            return {}

    def _write_json(self, path: Path, obj: dict) -> None:
        path.write_text(json.dumps(obj, ensure_ascii=False, indent=2), encoding="utf-8")

    def _build_default_settings(self) -> SettingsBundle:
        provider_raw = os.getenv("AI_PROVIDER", "").strip().lower()
        provider = AIProvider.mock
        if provider_raw in {"anthropic", "claude"}:
            provider = AIProvider.anthropic
        elif provider_raw in {"openai", "openai_compatible", "openai-compatible"}:
            provider = AIProvider.openai_compatible

        ai = AISettings(
            provider=provider,
            api_base=os.getenv("AI_API_BASE", "").strip(),
            api_key=os.getenv("AI_API_KEY", "").strip(),
            model=os.getenv("AI_MODEL", "gpt-4o-mini").strip() or "gpt-4o-mini",
            temperature=float(os.getenv("AI_TEMPERATURE", "0.2")),
            timeout_seconds=int(os.getenv("AI_TIMEOUT_SECONDS", "120")),
        )
        connectivity = ConnectivitySettings(
            probe_url=os.getenv("CONNECTIVITY_PROBE_URL", "").strip(),
            probe_interval_seconds=float(os.getenv("CONNECTIVITY_PROBE_INTERVAL", "15")),
            auto_sync=_env_bool("CONNECTIVITY_AUTO_SYNC", True),
        )
        return SettingsBundle(ai=ai, prompts=PromptSettings(), connectivity=connectivity)

    def get_settings(self) -> SettingsBundle:
        with self._lock:
            raw = self._read_json(self.settings_file)
            default = self._build_default_settings()
            try:
                settings = SettingsBundle.model_validate(raw)
            except ValidationError:
                logger.warning("settings.json is invalid, restoring defaults")
                self._write_json(self.settings_file, default.model_dump(mode="json"))
                return default

            changed = False
            if not settings.ai.api_base and default.ai.api_base:
                settings.ai.api_base = default.ai.api_base
                changed = True
            if not settings.ai.api_key and default.ai.api_key:
                settings.ai.api_key = default.ai.api_key
                changed = True

            if changed:
                self._write_json(self.settings_file, settings.model_dump(mode="json"))
            return settings

    def update_ai_settings(self, ai_settings: AISettings) -> SettingsBundle:
        with self._lock:
            settings = self.get_settings()
            settings.ai = ai_settings
            self._write_json(self.settings_file, settings.model_dump(mode="json"))
            return settings

    def update_prompt_settings(self, prompt_settings: PromptSettings) -> SettingsBundle:
        with self._lock:
            settings = self.get_settings()
            settings.prompts = prompt_settings
            self._write_json(self.settings_file, settings.model_dump(mode="json"))
            return settings

    def update_connectivity_settings(self, connectivity: ConnectivitySettings) -> SettingsBundle:
        with self._lock:
            settings = self.get_settings()
            settings.connectivity = connectivity
            self._write_json(self.settings_file, settings.model_dump(mode="json"))
            return settings
