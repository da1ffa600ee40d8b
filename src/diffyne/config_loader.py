"""Load DiffyneConfig from diffyne.yaml if present.

Merges file config, the ``DIFFYNE_SECRET_KEY`` environment variable, and
explicit keyword overrides.  Overrides win over the environment, which wins
over the file.
"""

from __future__ import annotations

import os
from pathlib import Path

from diffyne.config import DiffyneConfig

SECRET_ENV_VAR = "DIFFYNE_SECRET_KEY"

_KNOWN_KEYS: frozenset[str] = frozenset({
    "secret_key", "host", "port", "workers", "templates_dir", "components",
    "rate_limit_updates", "rate_limit_calls", "rate_limit_window",
    "request_timeout", "trusted_proxies", "render_cache_size", "max_events",
    "verify_patches", "debug",
})


def load_config(root: Path, **overrides: object) -> DiffyneConfig:
    """Load DiffyneConfig from root, optionally merging diffyne.yaml.

    Looks for diffyne.yaml, diffyne.yml, or diffyne.toml in root.  Unknown
    keys in the file are ignored.
    """
    file_config = _read_diffyne_config(root)
    env_secret = os.environ.get(SECRET_ENV_VAR)
    if env_secret:
        file_config["secret_key"] = env_secret
    merged = {**file_config, **{k: v for k, v in overrides.items() if v is not None}}
    return DiffyneConfig(root=root, **merged)


def _read_diffyne_config(root: Path) -> dict[str, object]:
    """Read diffyne config from yaml/toml if present. Returns empty dict otherwise."""
    for name in ("diffyne.yaml", "diffyne.yml"):
        path = root / name
        if path.is_file():
            return _parse_yaml(path)
    toml_path = root / "diffyne.toml"
    if toml_path.is_file():
        return _parse_toml(toml_path)
    return {}


def _parse_yaml(path: Path) -> dict[str, object]:
    """Parse YAML config. Returns empty dict on error."""
    import yaml

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError:
        return {}
    if not isinstance(data, dict):
        return {}
    return _flatten_diffyne_section(data)


def _parse_toml(path: Path) -> dict[str, object]:
    """Parse TOML config. Returns empty dict on error."""
    import tomllib

    try:
        data = tomllib.loads(path.read_text())
    except tomllib.TOMLDecodeError:
        return {}
    return _flatten_diffyne_section(data)


def _flatten_diffyne_section(data: dict[str, object]) -> dict[str, object]:
    """Extract diffyne.* keys (or known top-level keys) into config kwargs."""
    result: dict[str, object] = {}
    for k, v in data.items():
        if k in _KNOWN_KEYS:
            result[k] = v
    section = data.get("diffyne")
    if isinstance(section, dict):
        for k, v in section.items():
            if k in _KNOWN_KEYS:
                result[k] = v
    return result
