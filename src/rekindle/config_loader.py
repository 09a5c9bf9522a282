"""Load RekindleConfig from rekindle.yaml / rekindle.toml if present.

Merges file config with keyword overrides. Overrides take precedence.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

import yaml

from rekindle._errors import ConfigError
from rekindle.config import RekindleConfig

CONFIG_FILENAMES = ("rekindle.yaml", "rekindle.yml", "rekindle.toml")

_KNOWN_KEYS = frozenset({
    "source_dirs", "targets", "build_options", "client_entry",
    "reserved_modules", "reserved_prefixes", "reload_fallback_delay",
    "load_warninged_code", "excerpt_context", "debounce_ms",
})

_TUPLE_KEYS = ("source_dirs", "targets", "reserved_prefixes")


def load_config(root: Path, **overrides: object) -> RekindleConfig:
    """Load RekindleConfig for ``root``, merging the first config file found."""
    file_config = read_config_file(root)
    merged = {**file_config, **overrides}
    for key in _TUPLE_KEYS:
        if key in merged and isinstance(merged[key], (list, str)):
            value = merged[key]
            merged[key] = (value,) if isinstance(value, str) else tuple(value)
    if "reserved_modules" in merged and not isinstance(merged["reserved_modules"], frozenset):
        merged["reserved_modules"] = frozenset(merged["reserved_modules"])  # type: ignore[arg-type]
    try:
        return RekindleConfig(root=root, **merged)  # type: ignore[arg-type]
    except TypeError as exc:
        raise ConfigError(str(exc)) from exc


def read_config_file(root: Path) -> dict[str, object]:
    """Return the rekindle settings from the first config file in ``root``.

    Returns an empty dict when no config file exists.  A file that exists
    but cannot be parsed raises ConfigError.

    """
    for name in CONFIG_FILENAMES:
        path = root / name
        if not path.is_file():
            continue
        try:
            if path.suffix == ".toml":
                data = tomllib.loads(path.read_text(encoding="utf-8"))
            else:
                data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, tomllib.TOMLDecodeError, yaml.YAMLError) as exc:
            msg = f"could not read {path.name}: {exc}"
            raise ConfigError(msg) from exc
        if not isinstance(data, dict):
            msg = f"{path.name} must contain a mapping"
            raise ConfigError(msg)
        return _flatten_rekindle_section(data)
    return {}


def _flatten_rekindle_section(data: dict[str, object]) -> dict[str, object]:
    """Extract rekindle.* keys and known top-level keys into one mapping."""
    result: dict[str, object] = {}
    for k, v in data.items():
        if k in _KNOWN_KEYS:
            result[k] = v
    section = data.get("rekindle")
    if isinstance(section, dict):
        for k, v in section.items():
            if k not in _KNOWN_KEYS:
                msg = f"unknown rekindle setting {k!r}"
                raise ConfigError(msg)
            result[k] = v
    return result
