"""Configuration loading and validation."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from civicscore.common.errors import ConfigError
from civicscore.common.fs import read_yaml
from civicscore.common.schema import (
    validate_category_rules_config,
    validate_pipeline_config,
    validate_scoring_config,
    validate_wards_config,
)

CONFIG_FILES = {
    "pipeline": "pipeline.yml",
    "wards": "wards.yml",
    "category_rules": "category_rules.yml",
    "scoring": "scoring.yml",
}


@dataclass(frozen=True)
class ConfigBundle:
    pipeline: dict
    wards: dict
    category_rules: dict
    scoring: dict

    def dataset(self, name: str) -> dict:
        return self.pipeline["datasets"][name]


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _read_config_yaml(path: Path) -> Any:
    try:
        return read_yaml(path)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Configuration file is not valid YAML: {path} ({exc})") from exc


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Required configuration file not found: {path}")
    base = _read_config_yaml(path) or {}
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = _read_config_yaml(overlay_path)
    if overlay is None:
        return base
    return _deep_merge(base, overlay)


def load_all_configs(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> ConfigBundle:
    loaded: dict[str, dict] = {}
    for key, filename in CONFIG_FILES.items():
        overlay_path = overlay_config_dir / filename if overlay_config_dir is not None else None
        loaded[key] = _load_yaml_with_overlay(config_dir / filename, overlay_path)

    return ConfigBundle(
        pipeline=validate_pipeline_config(loaded["pipeline"], allow_unknown=allow_unknown),
        wards=validate_wards_config(loaded["wards"]),
        category_rules=validate_category_rules_config(loaded["category_rules"]),
        scoring=validate_scoring_config(loaded["scoring"]),
    )
