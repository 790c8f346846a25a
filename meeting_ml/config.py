from __future__ import annotations

import math
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from .describe import DEFAULT_LOCALE, resolve_locale


class ConfigError(ValueError):
	pass


DEFAULT_CONFIG_BASENAME = "meeting_ml.yaml"
CONFIG_ENV_VAR = "MEETING_ML_CONFIG"


DEFAULT_CONFIG_TEMPLATE = """version: 1

# Locale used for weekday names, week start and time zone display names.
locale: "en_US"

clustering:
  # Marker size in display pixels; half of it, converted to meters at the
  # current map scale, is the merge distance.
  marker_size_px: 40

export:
  # Keep rows whose description could not be rendered (empty "meeting").
  include_empty_descriptions: true
"""


DEFAULT_CONFIG: Dict[str, Any] = {
	"version": 1,
	"locale": DEFAULT_LOCALE,
	"clustering": {"marker_size_px": 40},
	"export": {"include_empty_descriptions": True},
}


def _xdg_config_home() -> Path:
	base = os.environ.get("XDG_CONFIG_HOME")
	if base:
		return Path(base)
	home = os.environ.get("HOME")
	if home:
		return Path(home) / ".config"
	return Path.home() / ".config"


def default_config_path() -> Path:
	return _xdg_config_home() / "meeting_ml" / DEFAULT_CONFIG_BASENAME


def resolve_config_path(explicit: Optional[str], *, prefer_xdg: bool = False) -> Path:
	"""Resolve the settings file path.

	Precedence:
	1) explicit CLI arg
	2) MEETING_ML_CONFIG env var
	3) XDG config file (if exists)
	4) local ./meeting_ml.yaml (if exists)
	5) XDG config file (default location)
	"""

	if explicit:
		return Path(explicit)

	env_path = os.environ.get(CONFIG_ENV_VAR)
	if env_path:
		return Path(env_path)

	xdg = default_config_path()
	if xdg.exists():
		return xdg

	if not prefer_xdg:
		local = Path.cwd() / DEFAULT_CONFIG_BASENAME
		if local.exists():
			return local

	return xdg


def init_config(path: Path, *, overwrite: bool = False) -> Path:
	"""Create a starter settings file.

	If overwrite is False and the path exists, this is a no-op.
	"""

	if path.exists() and not overwrite:
		return path

	path.parent.mkdir(parents=True, exist_ok=True)
	path.write_text(DEFAULT_CONFIG_TEMPLATE, encoding="utf-8")
	return path


def _merged(data: Dict[str, Any]) -> Dict[str, Any]:
	out: Dict[str, Any] = {
		"version": data.get("version", DEFAULT_CONFIG["version"]),
		"locale": data.get("locale", DEFAULT_CONFIG["locale"]),
	}
	for section in ("clustering", "export"):
		merged = dict(DEFAULT_CONFIG[section])
		merged.update(data.get(section) or {})
		out[section] = merged
	return out


def load_config(path: Path, *, missing_ok: bool = False) -> Dict[str, Any]:
	"""Read and validate a settings file, filling in defaults.

	With missing_ok, an absent file yields the defaults.
	"""

	try:
		with path.open("r", encoding="utf-8") as f:
			data = yaml.safe_load(f) or {}
	except FileNotFoundError as e:
		if missing_ok:
			return _merged({})
		raise ConfigError(
			f"Settings file not found: {path}. "
			"Create one with: --init-config"
		) from e
	except Exception as e:
		raise ConfigError(f"Failed to read settings YAML: {path}") from e

	if not isinstance(data, dict):
		raise ConfigError("Settings YAML must be a mapping (top-level object).")

	validate_config(data)
	return _merged(data)


def validate_config(config: Dict[str, Any]) -> None:
	"""Lightweight validation for user-edited settings."""

	locale = config.get("locale")
	if locale is not None:
		if not isinstance(locale, str) or not locale.strip():
			raise ConfigError("Settings field 'locale' must be a non-empty string.")
		if resolve_locale(locale.strip()) is None:
			raise ConfigError(f"Settings field 'locale' is not a known locale: {locale!r}")

	clustering = config.get("clustering")
	if clustering is not None:
		if not isinstance(clustering, dict):
			raise ConfigError("Settings field 'clustering' must be an object.")
		size = clustering.get("marker_size_px")
		if size is not None:
			try:
				value = float(size)
			except Exception as e:
				raise ConfigError("Settings field 'clustering.marker_size_px' must be a number.") from e
			if math.isnan(value) or value <= 0:
				raise ConfigError("Settings field 'clustering.marker_size_px' must be greater than zero.")

	export = config.get("export")
	if export is not None:
		if not isinstance(export, dict):
			raise ConfigError("Settings field 'export' must be an object.")
		flag = export.get("include_empty_descriptions")
		if flag is not None and not isinstance(flag, bool):
			raise ConfigError("Settings field 'export.include_empty_descriptions' must be true or false.")
