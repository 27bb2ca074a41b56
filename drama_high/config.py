"""App configuration (generator connection, audio).

Values come from three layers, later ones winning:
  1. _CONFIG_DEFAULTS below
  2. environment variables (GENERATOR_URL, GENERATOR_API_KEY), usually from .env
  3. {data_dir}/config.json, written by update_config()
"""

import json
import os
from pathlib import Path
from typing import Any

_CONFIG_DEFAULTS: dict[str, Any] = {
    "generator": {
        "provider_url": "http://localhost:8080",
        "api_key": "",
        "story_model": "",
        "fast_model": "",
        "image_model": "",
        "timeout": 120.0,
        "echo": False,
    },
    "audio": {
        "enabled": True,
        "volume": 0.3,
        "sample_rate": 44100,
    },
    "player_name": "Maya",
}


def _config_path(data_dir: Path) -> Path:
    return data_dir / "config.json"


def _defaults() -> dict[str, Any]:
    config = json.loads(json.dumps(_CONFIG_DEFAULTS))
    if os.getenv("GENERATOR_URL"):
        config["generator"]["provider_url"] = os.environ["GENERATOR_URL"]
    if os.getenv("GENERATOR_API_KEY"):
        config["generator"]["api_key"] = os.environ["GENERATOR_API_KEY"]
    return config


def _merge(config: dict[str, Any], fields: dict[str, Any]) -> None:
    for group in ("generator", "audio"):
        vals = fields.get(group)
        if isinstance(vals, dict):
            config[group].update({k: v for k, v in vals.items() if k in config[group]})
    if isinstance(fields.get("player_name"), str) and fields["player_name"]:
        config["player_name"] = fields["player_name"]


def get_config(data_dir: Path) -> dict[str, Any]:
    """Read config, returning defaults merged with stored values."""
    config = _defaults()
    path = _config_path(data_dir)
    if path.is_file():
        _merge(config, json.loads(path.read_text()))
    return config


def update_config(data_dir: Path, fields: dict[str, Any]) -> dict[str, Any]:
    """Merge fields into config and persist. Returns full config."""
    config = get_config(data_dir)
    _merge(config, fields)
    data_dir.mkdir(parents=True, exist_ok=True)
    _config_path(data_dir).write_text(json.dumps(config, indent=2))
    return config
