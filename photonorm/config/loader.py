"""
TOML configuration for the service and the batch converter.

Config files hold the sections of DEFAULTS as tables; keys left out fall
back to their defaults. The file location comes from the caller, then
PHOTONORM_CONFIG, then ./photonorm.toml.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

from photonorm.config.defaults import DEFAULTS
from photonorm.services.policy import JpegVariant

CONFIG_ENV = "PHOTONORM_CONFIG"
DEFAULT_CONFIG_NAME = "photonorm.toml"


def resolve_config_path(explicit: Path | None = None) -> Path:
	if explicit is not None:
		return Path(explicit)
	return Path(os.environ.get(CONFIG_ENV, DEFAULT_CONFIG_NAME))


def _read_toml(path: Path) -> dict[str, Any]:
	if path.is_dir():
		raise IsADirectoryError(f"Config path points to a directory: {path}")
	if not path.exists():
		return {}
	try:
		return tomllib.loads(path.read_text(encoding="utf-8"))
	except tomllib.TOMLDecodeError as exc:
		raise ValueError(f"Invalid config file {path}: {exc}") from exc


def _apply_sections(user: dict[str, Any], path: Path) -> dict[str, Any]:
	config: dict[str, Any] = {name: dict(section) for name, section in DEFAULTS.items()}
	for name, section in user.items():
		if not isinstance(section, dict):
			raise ValueError(f"'{name}' in {path} must be a [{name}] table")
		config.setdefault(name, {}).update(section)
	return config


def load_config(path: Path | None = None) -> dict[str, Any]:
	path = resolve_config_path(path)
	config = _apply_sections(_read_toml(path), path)

	variant = str(config["pipeline"]["jpeg_variant"]).lower()
	if variant not in {v.value for v in JpegVariant}:
		raise ValueError(f"Invalid pipeline.jpeg_variant in {path}: {variant!r}")
	config["pipeline"]["jpeg_variant"] = variant
	return config
