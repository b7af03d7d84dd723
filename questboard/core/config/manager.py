"""
ConfigManager: YAML-backed economy configuration access for Questboard.

Purpose
-------
- Provide hierarchical, dot-notation access to tunable economy values
  (leveling, boss, pvp, raid, praise).
- Back configuration with YAML defaults from the `config/` directory.
- Allow runtime overrides for hot balance changes and tests.

Responsibilities
----------------
- Load and deep-merge every YAML file under `Config.CONFIG_DIR`.
- Overlay runtime overrides on top of YAML defaults.
- Serve reads with hit/miss metrics.

Design Notes
------------
- Classmethod singleton, passed to services as `config_manager`.
- Lazy bootstrap: the first `get()` loads YAML if `initialize()` was never
  called, so pure engines work without explicit startup.
- Missing keys return the caller's default; every service read passes the
  documented constant as default, so an empty config directory still
  yields the reference economy.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, MutableMapping, Optional

import yaml

from questboard.core.config.config import Config
from questboard.core.logging.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ConfigMetrics:
    gets: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    overrides_applied: int = 0
    yaml_files_loaded: int = 0


class ConfigManager:
    """
    Dot-notation economy configuration with YAML defaults and overrides.

    Examples
    --------
    >>> ConfigManager.get("pvp.cooldown_ms", 30_000)
    30000
    >>> ConfigManager.set_override("boss.default_max_hp", 500)
    """

    _defaults: Dict[str, Any] = {}
    _overrides: Dict[str, Any] = {}
    _cache: Dict[str, Any] = {}
    _initialized: bool = False
    _metrics: ConfigMetrics = ConfigMetrics()

    # =========================================================================
    # YAML LOADING
    # =========================================================================

    @staticmethod
    def _deep_merge_dict(
        target: MutableMapping[str, Any],
        source: MutableMapping[str, Any],
    ) -> None:
        """Recursively merge `source` into `target` (in-place)."""
        for key, value in source.items():
            if isinstance(value, dict) and isinstance(target.get(key), dict):
                ConfigManager._deep_merge_dict(target[key], value)
            else:
                target[key] = copy.deepcopy(value)

    @staticmethod
    def _expand_dotted(key: str, value: Any) -> Dict[str, Any]:
        """Turn ``("a.b.c", 1)`` into ``{"a": {"b": {"c": 1}}}``."""
        expanded: Dict[str, Any] = {}
        node = expanded
        parts = key.split(".")
        for part in parts[:-1]:
            node[part] = {}
            node = node[part]
        node[parts[-1]] = value
        return expanded

    @classmethod
    def _load_yaml_configs(cls, config_dir: Path) -> None:
        """Load every YAML file under `config_dir` into `_defaults`."""
        if not config_dir.exists():
            logger.warning(
                "Config directory not found; using built-in defaults only",
                extra={"config_dir": str(config_dir)},
            )
            return

        yaml_files = sorted(config_dir.rglob("*.yaml")) + sorted(config_dir.rglob("*.yml"))
        for yaml_file in yaml_files:
            with yaml_file.open("r", encoding="utf-8") as handle:
                data = yaml.safe_load(handle)

            if isinstance(data, dict):
                cls._deep_merge_dict(cls._defaults, data)
                cls._metrics.yaml_files_loaded += 1
                logger.debug(
                    "Loaded YAML config",
                    extra={"file": str(yaml_file.relative_to(config_dir))},
                )
            elif data is not None:
                logger.warning(
                    "Ignoring non-dict YAML root object",
                    extra={
                        "file": str(yaml_file.relative_to(config_dir)),
                        "root_type": type(data).__name__,
                    },
                )

    @classmethod
    def _rebuild_cache(cls) -> None:
        cache: Dict[str, Any] = copy.deepcopy(cls._defaults)
        for key, value in cls._overrides.items():
            cls._deep_merge_dict(cache, cls._expand_dotted(key, value))
        cls._cache = cache

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @classmethod
    def initialize(cls, config_dir: Optional[Path] = None) -> None:
        """
        Load YAML defaults. Safe to call again; reloads from disk.

        Parameters
        ----------
        config_dir:
            Directory to scan; defaults to ``Config.CONFIG_DIR``.
        """
        directory = Path(config_dir) if config_dir is not None else Path(Config.CONFIG_DIR)
        cls._defaults = {}
        cls._metrics = ConfigMetrics()
        cls._load_yaml_configs(directory)
        cls._rebuild_cache()
        cls._initialized = True

        logger.info(
            "ConfigManager initialized",
            extra={
                "config_dir": str(directory),
                "yaml_file_count": cls._metrics.yaml_files_loaded,
                "top_level_keys": sorted(cls._cache.keys()),
            },
        )

    @classmethod
    def reset(cls) -> None:
        """Drop defaults, overrides and cache (used by tests)."""
        cls._defaults = {}
        cls._overrides = {}
        cls._cache = {}
        cls._initialized = False
        cls._metrics = ConfigMetrics()

    # =========================================================================
    # READS
    # =========================================================================

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """
        Retrieve a configuration value by dot-notation path.

        Returns `default` if any segment of the path is missing.
        """
        if not cls._initialized:
            cls.initialize()

        cls._metrics.gets += 1
        value: Any = cls._cache
        for part in key.split("."):
            if not isinstance(value, dict) or part not in value:
                cls._metrics.cache_misses += 1
                return default
            value = value[part]

        cls._metrics.cache_hits += 1
        return default if value is None else value

    @classmethod
    def get_all_keys(cls) -> List[str]:
        if not cls._initialized:
            cls.initialize()
        return list(cls._cache.keys())

    # =========================================================================
    # WRITES
    # =========================================================================

    @classmethod
    def set_override(cls, key: str, value: Any) -> None:
        """Override a single dot-notation key at runtime."""
        if not cls._initialized:
            cls.initialize()

        previous = cls.get(key)
        cls._overrides[key] = value
        cls._metrics.overrides_applied += 1
        cls._rebuild_cache()

        logger.info(
            "Configuration override applied",
            extra={"config_key": key, "old_value": previous, "new_value": value},
        )

    @classmethod
    def clear_overrides(cls) -> None:
        cls._overrides = {}
        cls._rebuild_cache()

    @classmethod
    def health_snapshot(cls) -> Dict[str, Any]:
        return {
            "initialized": cls._initialized,
            "overrides": len(cls._overrides),
            "gets": cls._metrics.gets,
            "cache_hits": cls._metrics.cache_hits,
            "cache_misses": cls._metrics.cache_misses,
            "yaml_files_loaded": cls._metrics.yaml_files_loaded,
        }
