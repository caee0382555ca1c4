"""Gateway: YAML configuration loader with default search paths."""

from __future__ import annotations

from pathlib import Path

import yaml

from pocket_whisper.l1_entities.config import AppConfig
from pocket_whisper.l3_interface_adapters.gateways.paths import DEFAULT_CONFIG_PATHS


class YamlConfigLoader:
    """Loads AppConfig from YAML files with merge and override support."""

    def __init__(self, search_paths: list[Path] | None = None) -> None:
        self._search_paths = DEFAULT_CONFIG_PATHS if search_paths is None else search_paths

    def load(
        self,
        config_path: str | None = None,
        overrides: dict | None = None,
    ) -> AppConfig:
        data = self.load_raw(config_path, overrides)
        return AppConfig.model_validate(data)

    def load_raw(
        self,
        config_path: str | None = None,
        overrides: dict | None = None,
    ) -> dict:
        """Return the merged YAML data as a raw dict (before Pydantic validation)."""
        data: dict = {}
        if config_path is not None:
            path = Path(config_path)
            if not path.exists():
                raise FileNotFoundError(f'Config file not found: {path}')
            data = yaml.safe_load(path.read_text(encoding='utf-8')) or {}
        else:
            for default_path in self._search_paths:
                if default_path.exists():
                    data = yaml.safe_load(default_path.read_text(encoding='utf-8')) or {}
                    break
        if overrides:
            deep_merge(data, overrides)
        return data


def deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            deep_merge(base[key], value)
        else:
            base[key] = value
    return base
