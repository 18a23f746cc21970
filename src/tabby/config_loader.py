"""Load TabbyConfig from tabby.yaml if present.

Merges file config with keyword overrides. Overrides take precedence.
"""

from __future__ import annotations

from pathlib import Path

from tabby._errors import ConfigError
from tabby.config import TabbyConfig

_KNOWN_KEYS = frozenset({
    "max_events",
    "verbose",
    "invalidate_on_vote_error",
    "invalidate_contexts_on_delete",
    "live_prepend_limit",
    "live_timelines",
})


def load_config(root: Path, **overrides: object) -> TabbyConfig:
    """Load TabbyConfig from root, optionally merging tabby.yaml.

    Looks for tabby.yaml, tabby.yml, or tabby.toml in root. If found, loads
    and merges with overrides. Overrides take precedence; an override of
    None is ignored.  Unknown override keys raise ConfigError.
    """
    unknown = set(overrides) - _KNOWN_KEYS
    if unknown:
        msg = f"unknown config keys: {', '.join(sorted(unknown))}"
        raise ConfigError(msg)
    file_config = _read_tabby_config(root)
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    if "live_timelines" in merged and not isinstance(merged["live_timelines"], tuple):
        merged["live_timelines"] = tuple(merged["live_timelines"])  # type: ignore[arg-type]
    return TabbyConfig(**merged)  # type: ignore[arg-type]


def _read_tabby_config(root: Path) -> dict[str, object]:
    """Read tabby config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("tabby.yaml", "tabby.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "tabby.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on error."""
    import yaml

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_tabby_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on error."""
    import tomllib

    try:
        data = tomllib.loads(path.read_text())
    except (OSError, tomllib.TOMLDecodeError):
        return {}
    return _flatten_tabby_section(data)


def _flatten_tabby_section(data: dict[str, object]) -> dict[str, object]:
    """Extract tabby.* keys into top-level config; drop unknown keys."""
    result: dict[str, object] = {}
    for k, v in data.items():
        if k in _KNOWN_KEYS:
            result[k] = v
    tabby = data.get("tabby")
    if isinstance(tabby, dict):
        for k, v in tabby.items():
            if k in _KNOWN_KEYS:
                result[k] = v
    return result
