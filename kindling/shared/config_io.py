"""Configuration I/O utilities for reading and writing TOML config files.

This module handles serialization/deserialization of KindlingConfig to/from
TOML format.
"""

import os
import platform
import tomllib  # Built-in Python 3.11+
from dataclasses import asdict
from pathlib import Path
from typing import Any

import tomli_w

from kindling.domain.config import (
    EmbeddingConfig,
    IndexConfig,
    KindlingConfig,
    SearchConfig,
    SourceConfig,
    StoreConfig,
)

_SECTIONS: dict[str, type] = {
    "index": IndexConfig,
    "embedding": EmbeddingConfig,
    "search": SearchConfig,
    "store": StoreConfig,
    "source": SourceConfig,
}


def get_global_config_path() -> Path:
    """Get the path to the global config file.

    The location is platform-dependent:
    - Linux/macOS: $XDG_CONFIG_HOME/kindling/config.toml or ~/.config/kindling/config.toml
    - Windows: %APPDATA%/kindling/config.toml

    Returns:
        Path to the global config file (may not exist)
    """
    if platform.system() == "Windows":
        appdata = os.environ.get("APPDATA", "")
        if appdata:
            return Path(appdata) / "kindling" / "config.toml"
        return Path.home() / ".config" / "kindling" / "config.toml"
    xdg_config = os.environ.get("XDG_CONFIG_HOME", "")
    if xdg_config:
        return Path(xdg_config) / "kindling" / "config.toml"
    return Path.home() / ".config" / "kindling" / "config.toml"


def load_config_data(path: Path) -> dict[str, Any]:
    """Load raw TOML data from a config file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in config file: {e}") from e


def merge_config_data(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge two config dictionaries, with override values taking precedence.

    Merges at the section level: keys present in an override section replace
    the same keys in the base section, other base keys are kept.

    Args:
        base: Base configuration dictionary
        override: Override configuration dictionary (takes precedence)

    Returns:
        Merged configuration dictionary
    """
    result: dict[str, Any] = {}
    for section in set(base) | set(override):
        base_section = base.get(section, {})
        override_section = override.get(section, {})
        if isinstance(base_section, dict) and isinstance(override_section, dict):
            result[section] = {**base_section, **override_section}
        elif section in override:
            result[section] = override_section
        else:
            result[section] = base_section
    return result


def config_data_to_kindling_config(data: dict[str, Any]) -> KindlingConfig:
    """Convert raw config data dictionary to KindlingConfig.

    Raises:
        ValueError: If a section is not a table, has unknown keys, or fails
            validation.
    """
    sections: dict[str, Any] = {}
    for name, config_cls in _SECTIONS.items():
        section = data.get(name, {})
        if not isinstance(section, dict):
            raise ValueError(f"[{name}] must be a table")
        try:
            sections[name] = config_cls(**section)
        except TypeError as e:
            raise ValueError(f"Invalid key in [{name}]: {e}") from e
    return KindlingConfig(**sections)


def load_config(path: Path) -> KindlingConfig:
    """Load configuration from a TOML file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config file is malformed
    """
    return config_data_to_kindling_config(load_config_data(path))


def save_config(config: KindlingConfig, path: Path) -> None:
    """Save configuration to a TOML file.

    Unset optional values are omitted since TOML has no null.
    """
    data: dict[str, Any] = {}
    for name in _SECTIONS:
        section = asdict(getattr(config, name))
        data[name] = {key: value for key, value in section.items() if value is not None}

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)
