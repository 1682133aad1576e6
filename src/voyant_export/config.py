# ABOUTME: Configuration management using XDG Base Directory layout
# ABOUTME: Handles config.json with export, retry, archive and logging settings
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

from voyant_export.archiver import COMPRESSION_METHODS
from voyant_export.exceptions import ConfigError
from voyant_export.retry import RetryPolicy

logger = logging.getLogger(__name__)

APP_NAME = "voyant-export"
CONFIG_DIR_ENV = "VOYANT_EXPORT_CONFIG_DIR"
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class Config:
    """
    Configuration management for voyant-export using XDG Base Directory layout.

    Directories (following XDG standard):
    - Config: $XDG_CONFIG_HOME/voyant-export (default: ~/.config/voyant-export)
    - State: $XDG_STATE_HOME/voyant-export (default: ~/.local/state/voyant-export)

    ``$VOYANT_EXPORT_CONFIG_DIR`` takes the place of an explicit config_dir.
    """

    def __init__(self, config_dir: str | None = None):
        if config_dir is None:
            config_dir = os.environ.get(CONFIG_DIR_ENV) or None

        if config_dir is None:
            xdg_config_home = os.environ.get("XDG_CONFIG_HOME", os.path.expanduser("~/.config"))
            config_dir = os.path.join(xdg_config_home, APP_NAME)
            logger.debug(f"Using XDG config directory: {config_dir}")

            xdg_state_home = os.environ.get("XDG_STATE_HOME", os.path.expanduser("~/.local/state"))
            self.state_dir = Path(xdg_state_home) / APP_NAME
        else:
            # An explicit config_dir keeps everything under it
            logger.debug(f"Using custom config directory: {config_dir}")
            self.state_dir = Path(config_dir) / "state"

        self.config_dir = Path(config_dir).expanduser().resolve()

        restricted_dirs = ["/", "/etc", "/usr", "/bin", "/sbin", "/var", "/tmp"]
        if str(self.config_dir) in restricted_dirs:
            raise ConfigError(
                f"Cannot use system directory as config dir: {config_dir}",
                recovery_hint=f"Set {CONFIG_DIR_ENV} or --config-dir to a private directory",
            )

        self._ensure_directories()
        self._load_config()

    def _ensure_directories(self):
        """Create necessary XDG directories"""
        try:
            self.config_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
            self.state_dir.mkdir(parents=True, exist_ok=True, mode=0o700)
            (self.state_dir / "logs").mkdir(exist_ok=True, mode=0o700)
        except OSError as e:
            logger.error(f"Failed to create directories: {e}")
            raise ConfigError(f"Failed to create configuration directories: {e}") from e

    @property
    def config_file(self) -> Path:
        return self.config_dir / "config.json"

    def _validate_config_structure(self, settings: dict) -> bool:
        """Validate that loaded config has required structure."""
        if not isinstance(settings, dict):
            logger.error("Config root is not an object")
            return False

        for key in self._default_settings():
            if key not in settings:
                logger.error(f"Config missing required key: {key}")
                return False
            if not isinstance(settings[key], dict):
                logger.error(f"Config key {key} has wrong type: {type(settings[key])}")
                return False

        return True

    def _backup_invalid(self, reason: str) -> Path:
        ts = datetime.now().strftime("%Y%m%d%H%M%S")
        backup_path = self.config_file.parent / f"config.json.invalid_{ts}"
        self.config_file.rename(backup_path)
        logger.warning(f"{reason}, backed up to {backup_path}; using default settings")
        return backup_path

    def _load_config(self):
        """Load configuration with structure validation"""
        if not self.config_file.exists():
            self.settings = self._default_settings()
            self.save_config()
            return

        try:
            with open(self.config_file) as f:
                loaded_settings = json.load(f)
        except json.JSONDecodeError as e:
            self._backup_invalid(f"Invalid JSON in config file: {e}")
            self.settings = self._default_settings()
            self.save_config()
            return
        except OSError as e:
            logger.error(f"Failed to load config: {e}")
            self.settings = self._default_settings()
            return

        if not self._validate_config_structure(loaded_settings):
            self._backup_invalid("Invalid config structure")
            self.settings = self._default_settings()
            self.save_config()
            return

        # Fill keys added in newer versions
        defaults = self._default_settings()
        for section, values in defaults.items():
            for key, value in values.items():
                loaded_settings[section].setdefault(key, value)
        self.settings = loaded_settings
        self._validate_settings()

    def _default_settings(self) -> dict[str, Any]:
        """Default configuration settings"""
        return {
            "export": {
                "max_concurrency": 4,
                "temp_prefix": "collection",
            },
            "retry": {
                "max_attempts": 3,
                "initial_delay": 1.0,
                "backoff_multiplier": 2.0,
            },
            "archive": {"compression": "deflated"},
            "logging": {
                "level": "INFO",
                "file": None,  # e.g. "voyant-export.log", written to the state logs dir
            },
        }

    def _validate_settings(self):
        """Clamp settings to acceptable ranges"""
        defaults = self._default_settings()

        export = self.settings["export"]
        concurrency = export.get("max_concurrency")
        if not isinstance(concurrency, int) or isinstance(concurrency, bool):
            logger.warning(f"Invalid max_concurrency {concurrency!r}, using default")
            concurrency = defaults["export"]["max_concurrency"]
        export["max_concurrency"] = min(max(1, concurrency), 32)
        if not isinstance(export.get("temp_prefix"), str) or not export["temp_prefix"].strip():
            export["temp_prefix"] = defaults["export"]["temp_prefix"]

        retry = self.settings["retry"]
        attempts = retry.get("max_attempts")
        if not isinstance(attempts, int) or isinstance(attempts, bool) or attempts < 1:
            logger.warning(f"Invalid retry max_attempts {attempts!r}, using default")
            retry["max_attempts"] = defaults["retry"]["max_attempts"]
        for key in ("initial_delay", "backoff_multiplier"):
            value = retry.get(key)
            if not isinstance(value, (int, float)) or isinstance(value, bool) or value < 0:
                logger.warning(f"Invalid retry {key} {value!r}, using default")
                retry[key] = defaults["retry"][key]
        if retry["backoff_multiplier"] < 1:
            logger.warning("Retry backoff_multiplier below 1, clamping to 1")
            retry["backoff_multiplier"] = 1.0

        archive = self.settings["archive"]
        if archive.get("compression") not in COMPRESSION_METHODS:
            logger.warning(
                f"Invalid archive compression '{archive.get('compression')}', defaulting to 'deflated'. "
                f"Valid options: {', '.join(sorted(COMPRESSION_METHODS))}"
            )
            archive["compression"] = "deflated"

        log_settings = self.settings["logging"]
        level = str(log_settings.get("level", "INFO")).upper()
        if level not in VALID_LOG_LEVELS:
            logger.warning(f"Invalid log level '{level}', defaulting to INFO")
            level = "INFO"
        log_settings["level"] = level

    def save_config(self):
        """Save configuration to disk"""
        try:
            with open(self.config_file, "w") as f:
                json.dump(self.settings, f, indent=2, sort_keys=True)
            logger.debug("Configuration saved")
        except OSError as e:
            logger.error(f"Failed to save config: {e}")

    def retry_policy(self) -> RetryPolicy:
        retry = self.settings["retry"]
        return RetryPolicy(
            max_attempts=retry["max_attempts"],
            initial_delay=float(retry["initial_delay"]),
            backoff_multiplier=float(retry["backoff_multiplier"]),
        )

    @property
    def max_concurrency(self) -> int:
        return self.settings["export"]["max_concurrency"]

    def get_log_dir(self) -> Path:
        return self.state_dir / "logs"
