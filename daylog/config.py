"""Configuration: YAML file merged over defaults, then environment overrides."""

import copy
import logging
import os

import yaml

logger = logging.getLogger(__name__)

# (section, key, caster) for each supported environment variable
ENV_OVERRIDES = {
    "HOST": ("server", "host", str),
    "PORT": ("server", "port", int),
    "LOGS_DIR": ("storage", "logs_dir", str),
    "RETENTION_DAYS": ("retention", "days", int),
    "CLEANUP_TIMEZONE": ("retention", "timezone", str),
    "LOG_LEVEL": ("logging", "level", str),
    "CORS_ORIGIN": ("server", "cors_origin", str),
}


class Config:
    """Configuration manager that loads from YAML and merges with defaults."""

    DEFAULTS = {
        "server": {
            "host": "0.0.0.0",
            "port": 4005,
            "debug": False,
            "cors_origin": "*",
        },
        "storage": {
            "logs_dir": "./logs",
        },
        "batch": {
            "max_size": 1000,
        },
        "retention": {
            "enabled": True,
            "days": 14,
            "schedule_hour": 2,
            "schedule_minute": 0,
            "startup_delay_seconds": 5,
            "timezone": None,
        },
        "archive": {
            "compresslevel": 9,
        },
        "logging": {
            "level": "INFO",
        },
    }

    def __init__(self, config_path=None, environ=None):
        self._config = copy.deepcopy(self.DEFAULTS)

        if config_path is not None:
            try:
                with open(config_path, "r", encoding="utf-8") as f:
                    user_config = yaml.safe_load(f)

                if user_config and isinstance(user_config, dict):
                    self._config = self._deep_merge(self._config, user_config)
                logger.info("Loaded YAML config from %s", config_path)
            except FileNotFoundError:
                logger.warning("Config file %s not found, using defaults", config_path)
            except yaml.YAMLError:
                logger.warning("Invalid YAML in %s, using defaults", config_path)

        self._apply_env(os.environ if environ is None else environ)

    @staticmethod
    def _deep_merge(base, override):
        """Recursively merge override dict into base dict."""
        result = copy.deepcopy(base)
        for key, value in override.items():
            if (
                key in result
                and isinstance(result[key], dict)
                and isinstance(value, dict)
            ):
                result[key] = Config._deep_merge(result[key], value)
            else:
                result[key] = copy.deepcopy(value)
        return result

    def _apply_env(self, environ):
        for var, (section, key, cast) in ENV_OVERRIDES.items():
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            try:
                self._config.setdefault(section, {})[key] = cast(raw)
            except ValueError:
                logger.warning("Ignoring %s=%r: expected %s", var, raw, cast.__name__)

    def set(self, section, key, value):
        """Override a single value (used for CLI flags)."""
        self._config.setdefault(section, {})[key] = value

    def get(self, key, default=None):
        """Get a top-level config key."""
        return self._config.get(key, default)

    def __getitem__(self, key):
        return self._config[key]

    def __contains__(self, key):
        return key in self._config


def load_config(path=None):
    """Build a Config, honouring ``CONFIG_PATH`` when no path is given."""
    return Config(path or os.environ.get("CONFIG_PATH", "config.yaml"))
