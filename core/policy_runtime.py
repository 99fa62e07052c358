"""Configuration loading and runtime directory bootstrapping."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from core.settings import Settings


def load_yaml(path: Path) -> dict[str, Any]:
    """Load YAML from file, returning empty mapping when missing."""
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def merge_dicts(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries."""
    merged: dict[str, Any] = dict(base)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = merge_dicts(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_effective_config(root: Path, overrides: dict[str, Any] | None = None) -> dict[str, Any]:
    """Load and merge ``config/default.yaml``, ``models.yaml`` and ``tools.yaml``."""
    config_dir = root / "config"
    default_cfg = load_yaml(config_dir / "default.yaml")
    models_cfg = load_yaml(config_dir / "models.yaml")
    tools_cfg = load_yaml(config_dir / "tools.yaml")

    merged = merge_dicts(default_cfg, {"models": models_cfg, "tools": tools_cfg})
    if overrides:
        merged = merge_dicts(merged, overrides)
    return merged


def load_settings(root: Path, overrides: dict[str, Any] | None = None) -> Settings:
    """Effective configuration validated into typed settings."""
    return Settings.model_validate(load_effective_config(root, overrides))


def resolve_db_path(root: Path, settings: Settings) -> Path | None:
    """Absolute snapshot database path with its directory created, or None when disabled."""
    if not settings.paths.db_path:
        return None
    db_path = (root / settings.paths.db_path).resolve()
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return db_path
