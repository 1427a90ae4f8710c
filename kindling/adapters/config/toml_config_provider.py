"""TOML-based configuration provider.

Loads configuration from .kindling/config.toml with global config fallback.

Config loading priority (highest to lowest):
1. Local: .kindling/config.toml (project-specific)
2. Global: ~/.config/kindling/config.toml (user defaults)
3. Built-in defaults
"""

import logging
from pathlib import Path
from typing import Any

from kindling.domain.config import KindlingConfig
from kindling.shared.config_io import (
    config_data_to_kindling_config,
    get_global_config_path,
    load_config_data,
    merge_config_data,
)

logger = logging.getLogger(__name__)


class TomlConfigProvider:
    """Configuration provider that loads from TOML files.

    Implements config cascade:
    1. Load global config if present
    2. Load local config (.kindling/config.toml) if present
    3. Local values override global values (section-level merge)
    4. Missing values fall back to built-in defaults

    A file that fails to parse or validate is logged and skipped, so one bad
    file never hides the other.
    """

    def load(self, kindling_dir: Path) -> KindlingConfig:
        """Load configuration with global fallback.

        Args:
            kindling_dir: Path to .kindling directory containing config.toml

        Returns:
            KindlingConfig with merged global/local values or defaults
        """
        data: dict[str, Any] = {}
        for label, path in (
            ("global", get_global_config_path()),
            ("local", kindling_dir / "config.toml"),
        ):
            if not path.exists():
                continue
            try:
                candidate = merge_config_data(data, load_config_data(path))
                # Validate each step so a bad file is dropped on its own
                config_data_to_kindling_config(candidate)
            except (FileNotFoundError, ValueError) as e:
                logger.warning(f"Failed to load {label} config at {path}: {e}. Ignoring it.")
                continue
            data = candidate
            logger.debug(f"Loaded {label} config from {path}")

        return config_data_to_kindling_config(data)
