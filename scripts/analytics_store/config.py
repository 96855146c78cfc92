"""
Unified configuration management for tool-call analytics.

Provides centralized configuration with:
- JSON file loading with defaults
- Environment variable overrides
- Dot-notation access
- Feature enable/disable flags
"""

import copy
import json
import os
import sys
from pathlib import Path
from typing import Any, Optional


DEFAULT_CONFIG_PATH = Path("~/.devflow/analytics_config.json")

# Environment variable -> (dot key, parser)
ENV_OVERRIDES = {
    "DEVFLOW_TELEMETRY_ENABLED": ("telemetry.enabled", "bool"),
    "DEVFLOW_TELEMETRY_BATCH_SIZE": ("telemetry.batch_size", "int"),
    "DEVFLOW_TELEMETRY_FLUSH_INTERVAL_MS": ("telemetry.flush_interval_ms", "int"),
    "DEVFLOW_TELEMETRY_VERBOSE": ("telemetry.verbose", "bool"),
    "DEVFLOW_ANALYTICS_BACKEND": ("store.backend", "str"),
    "DEVFLOW_ANALYTICS_DB": ("store.db_path", "str"),
}


class AnalyticsConfig:
    """
    Singleton configuration manager for analytics features.

    Usage:
        from analytics_store.config import config

        if config.is_enabled('telemetry'):
            # ... telemetry code

        db_path = config.get('store.db_path')
    """

    _instance = None
    _config = None
    _config_loaded = False

    def __new__(cls):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path: Optional[Path] = None):
        """
        Load configuration from file.

        Args:
            config_path: Path to analytics_config.json (optional)
        """
        if self._config_loaded:
            return  # Already loaded

        if config_path is None:
            config_path = Path(
                os.environ.get("DEVFLOW_ANALYTICS_CONFIG", str(DEFAULT_CONFIG_PATH))
            )
        config_path = Path(config_path).expanduser()

        self._config = self._get_defaults()
        if config_path.exists():
            try:
                with open(config_path) as f:
                    self._merge(self._config, json.load(f))
            except Exception as e:
                print(f"Warning: Failed to load config from {config_path}: {e}",
                      file=sys.stderr)
                self._config = self._get_defaults()

        # Apply environment variable overrides
        self._apply_env_overrides()

        self._config_loaded = True

    def _get_defaults(self) -> dict:
        """
        Get default configuration.

        Returns:
            Dictionary with default settings
        """
        return {
            "version": "1.0.0",
            "telemetry": {
                "enabled": True,
                "batch_size": 50,
                "flush_interval_ms": 5000,
                "verbose": False,
            },
            "store": {
                "backend": "sqlite",
                "db_path": "~/.devflow/analytics.db",
                "jsonl_dir": "~/.devflow/analytics",
            },
        }

    def _merge(self, target: dict, source: dict):
        """Merge file values over defaults, keeping nested defaults."""
        for key, value in source.items():
            if key in target and isinstance(target[key], dict) and isinstance(value, dict):
                self._merge(target[key], value)
            else:
                target[key] = value

    def _apply_env_overrides(self):
        """Apply environment variable overrides to configuration."""
        # DEVFLOW_TELEMETRY_ENABLED=false
        for env_name, (key, kind) in ENV_OVERRIDES.items():
            if env_name not in os.environ:
                continue

            raw = os.environ[env_name]
            if kind == "bool":
                value = raw.lower() in ("true", "1", "yes")
            elif kind == "int":
                try:
                    value = int(raw)
                except ValueError:
                    print(f"Warning: Ignoring {env_name}={raw!r} (not an integer)",
                          file=sys.stderr)
                    continue
            else:
                value = raw

            self._set(key, value)

    def _set(self, key: str, value: Any):
        keys = key.split('.')
        config = self._config

        # Navigate to parent
        for k in keys[:-1]:
            if k not in config:
                config[k] = {}
            config = config[k]

        config[keys[-1]] = value

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value with dot notation.

        Args:
            key: Configuration key (e.g., "telemetry.enabled")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        if not self._config_loaded:
            self.load()

        keys = key.split('.')
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
            else:
                return default

        return value if value is not None else default

    def set(self, key: str, value: Any):
        """
        Set configuration value (runtime only, not persisted).

        Args:
            key: Configuration key (dot notation)
            value: Value to set
        """
        if not self._config_loaded:
            self.load()

        self._set(key, value)

    def is_enabled(self, feature: str) -> bool:
        """
        Check if a feature is enabled.

        Args:
            feature: Feature name (e.g., "telemetry")

        Returns:
            True if enabled, False otherwise
        """
        return bool(self.get(f"{feature}.enabled", False))

    def reload(self, config_path: Optional[Path] = None):
        """Force reload configuration from file."""
        self._config_loaded = False
        self.load(config_path)

    def get_all(self) -> dict:
        """
        Get entire configuration dictionary.

        Returns:
            Full configuration
        """
        if not self._config_loaded:
            self.load()
        return copy.deepcopy(self._config)


# Singleton instance for import
config = AnalyticsConfig()

# Auto-load on import
config.load()
