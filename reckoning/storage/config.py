"""App settings (AI connection, engine timeouts, evolution thresholds)."""

import copy
from typing import Any

from .core import JsonStore

CONFIG_DEFAULTS: dict[str, Any] = {
    "ai": {
        "provider_url": "",
        "api_key": "",
        "provider_format": "koboldcpp",
        "model": "",
        "timeout": 120.0,
    },
    "generation_timeout": 60.0,
    "evolution": {
        "queue_size": 100,
        "villain_fear": 0.6,
        "villain_resentment": 0.5,
        "ally_trust": 0.6,
        "ally_respect": 0.6,
        "ally_affection": 0.5,
    },
    "recent_history": 10,
}


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    # Nested dicts merge key by key; unknown top-level keys are ignored.
    for key, value in fields.items():
        if key not in config:
            continue
        if isinstance(config[key], dict) and isinstance(value, dict):
            config[key].update(value)
        else:
            config[key] = value


class ConfigStore:
    def __init__(self, store: JsonStore) -> None:
        self._store = store

    @property
    def path(self):
        return self._store.base / "config.json"

    def get_config(self) -> dict[str, Any]:
        """Read config, returning defaults merged with stored values."""
        config = copy.deepcopy(CONFIG_DEFAULTS)
        if self.path.is_file():
            _merge(config, self._store.read_json(self.path))
        return config

    def update_config(self, fields: dict[str, Any]) -> dict[str, Any]:
        """Merge fields into config and persist. Returns full config."""
        config = self.get_config()
        _merge(config, fields)
        self._store.write_json(self.path, config)
        return config
