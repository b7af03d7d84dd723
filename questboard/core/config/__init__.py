"""
Configuration subsystem for Questboard.

- `Config`: static, environment-backed settings (database, logging).
- `ConfigManager`: YAML-backed economy tunables with dot-notation access.
"""

from questboard.core.config.config import Config, Environment
from questboard.core.config.manager import ConfigManager

__all__ = ["Config", "ConfigManager", "Environment"]
