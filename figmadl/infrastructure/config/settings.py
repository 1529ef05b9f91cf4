"""Provides functions for loading and accessing configuration settings.

Supports loading from .env files, environment variables, and a dedicated
YAML configuration file (~/.figmadl/config.yaml).
"""

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any, Optional, Dict

import yaml
from dotenv import load_dotenv

from figmadl.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

# --- Configuration Constants ---
DEFAULT_CONFIG_DIR = Path.home() / ".figmadl"
DEFAULT_CONFIG_FILE = DEFAULT_CONFIG_DIR / "config.yaml"
ENV_FILE_NAME = ".env"

API_KEY_SETTING = "figma_api_key"

# --- Global Configuration Store (Simple Approach) ---
_config: Dict[str, Any] = {}
_test_config: Dict[str, Any] = {}  # For testing purposes
_loaded = False


def load_configuration(config_file: Path = DEFAULT_CONFIG_FILE, env_file: Optional[Path] = None) -> None:
    """Loads configuration from environment, .env file, and YAML file.

    Priority order (highest to lowest):
    1. Environment Variables
    2. .env file
    3. YAML configuration file
    4. Default values passed to get_config

    Args:
        config_file: Path to the YAML configuration file.
        env_file: Path to the .env file (searches upwards from cwd if None).
    """
    global _config, _loaded
    if _loaded:
        logger.debug("Configuration already loaded.")
        return

    _config = {}

    # 1. Load from YAML file (Lowest priority)
    if config_file.exists():
        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                yaml_config = yaml.safe_load(f)
            if isinstance(yaml_config, dict):
                _config.update({str(k).lower(): v for k, v in yaml_config.items()})
                logger.info(f"Loaded configuration from YAML: {config_file}")
            elif yaml_config is not None:
                logger.warning(f"YAML config file {config_file} did not contain a dictionary.")
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Failed to load or parse YAML config {config_file}: {e}")
    else:
        logger.debug(f"YAML config file not found: {config_file}")

    # 2. Load from .env file (Medium priority)
    dotenv_path = env_file or find_dotenv_path()
    if dotenv_path:
        # override=False: ENV VARS take precedence
        if load_dotenv(dotenv_path=dotenv_path, override=False):
            logger.info(f"Loaded environment variables from: {dotenv_path}")
    else:
        logger.debug("Skipping .env file loading (no .env found).")

    # 3. Environment Variables (Highest priority) are handled by os.environ in get_config

    _loaded = True


def reset_configuration() -> None:
    """Forgets loaded configuration so the next load_configuration() reads again."""
    global _config, _loaded
    _config = {}
    _loaded = False


def _coerce(value: str) -> Any:
    """Converts common string representations to bool/int/float."""
    if value.lower() == 'true':
        return True
    if value.lower() == 'false':
        return False
    try:
        if '.' in value:
            return float(value)
        return int(value)
    except (ValueError, TypeError):
        return value


def get_config(key: str, default: Any = None) -> Any:
    """
    Get a configuration value by key.

    Priority:
    1. Test configuration (if in testing mode)
    2. Environment variable (key upper-cased)
    3. YAML config (key lower-cased)
    4. Default value

    Args:
        key: The configuration key
        default: Default value if the key is not found

    Returns:
        The configuration value
    """
    if key in _test_config:
        return _test_config[key]

    env_key = key.upper()
    if env_key in os.environ:
        return _coerce(os.environ[env_key])

    if key.lower() in _config:
        return _config[key.lower()]

    return default


def find_dotenv_path() -> Optional[Path]:
    """Searches for the .env file upwards from the current directory."""
    cwd = Path.cwd()
    for path in [cwd] + list(cwd.parents):
        env_path = path / ENV_FILE_NAME
        if env_path.is_file():
            return env_path
    return None


# --- Convenience Functions ---

def get_figma_api_key() -> Optional[str]:
    """Convenience function to get the Figma API key (FIGMA_API_KEY)."""
    key = get_config(API_KEY_SETTING)
    if key is None or str(key).strip() == "":
        return None
    return str(key).strip()


def get_log_level_name() -> str:
    return str(get_config('logging_level', 'INFO')).upper()


@dataclass(frozen=True)
class GovernanceSettings:
    """Request-governance knobs, all durations in seconds."""
    rate_limit_max_requests: int = 30
    rate_limit_window_seconds: float = 60.0
    rate_limit_safety_margin_seconds: float = 0.1
    max_retries: int = 5
    initial_backoff_seconds: float = 2.0
    max_jitter_seconds: float = 1.0
    throttle_step_seconds: float = 2.0
    throttle_cap_seconds: float = 10.0
    batch_size: int = 5
    queue_concurrency: int = 2
    queue_interval_seconds: float = 1.0
    http_timeout_seconds: float = 60.0
    api_base_url: str = "https://api.figma.com/v1"

    def __post_init__(self):
        for name in ("rate_limit_max_requests", "batch_size", "queue_concurrency"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be at least 1, got {getattr(self, name)}")
        if self.max_retries < 0:
            raise ConfigurationError(f"max_retries cannot be negative, got {self.max_retries}")
        for name in ("rate_limit_window_seconds", "queue_interval_seconds", "initial_backoff_seconds",
                     "max_jitter_seconds", "throttle_step_seconds", "throttle_cap_seconds",
                     "rate_limit_safety_margin_seconds"):
            if getattr(self, name) < 0:
                raise ConfigurationError(f"{name} cannot be negative, got {getattr(self, name)}")

    @property
    def batch_cooldown_seconds(self) -> float:
        """Extra pause between resolution batches: twice the base interval."""
        return 2 * self.queue_interval_seconds


def _convert_setting(default: Any, raw: Any) -> Any:
    """Converts a raw config value to the type of its default.

    Integer settings accept whole numbers only: ``2.5`` is rejected rather
    than truncated, and booleans are not treated as numbers.
    """
    if isinstance(default, int) and not isinstance(default, bool):
        if isinstance(raw, bool):
            raise ValueError(f"expected a whole number, got {raw!r}")
        number = float(raw) if isinstance(raw, str) else raw
        if isinstance(number, float) and not number.is_integer():
            raise ValueError(f"expected a whole number, got {raw!r}")
        return int(number)
    return type(default)(raw)


def load_governance_settings() -> GovernanceSettings:
    """Builds GovernanceSettings from configuration keys prefixed with ``figma_``."""
    values: Dict[str, Any] = {}
    for field in fields(GovernanceSettings):
        name, default = field.name, field.default
        raw = get_config(f"figma_{name}", default)
        try:
            values[name] = _convert_setting(default, raw)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid value for figma_{name}: {raw!r}") from e
    return GovernanceSettings(**values)


def set_config_for_testing(config_dict: Dict[str, Any]) -> None:
    """
    Set configuration values for testing purposes.
    These values will override any existing configuration.

    Args:
        config_dict: Dictionary of configuration values to set
    """
    _test_config.update(config_dict)
    logger.debug(f"Set testing configuration: {config_dict}")


def clear_test_config() -> None:
    """Clear all testing configuration values."""
    _test_config.clear()
    logger.debug("Cleared testing configuration")
