"""Gallery downloader configuration from YAML file.

Precedence, lowest to highest:
- Built-in defaults
- config.yaml (``gallery:`` section)
- Environment variables (GROUPME_TOKEN, GALLERY_OUTPUT_DIR, ...)
- Explicit overrides (the CLI's flags)

Environment variables ARE also supported using ${VAR_NAME} and
${VAR_NAME:-default} syntax inside the YAML file.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from gallery_core.errors import ConfigurationError
from gallery_core.paths import ORGANIZE_MODES
from gallery_core.resilience import RetryConfig
from groupme_gallery.api_client import DEFAULT_API_BASE_URL, DEFAULT_PAGE_LIMIT
from groupme_gallery.scheduler import MAX_CONCURRENCY, MIN_CONCURRENCY

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path("config.yaml")

VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# env var -> (config key, converter)
ENV_OVERRIDES: Dict[str, tuple[str, Any]] = {
    "GROUPME_TOKEN": ("token", str),
    "GROUPME_API_URL": ("api_base_url", str),
    "GALLERY_OUTPUT_DIR": ("output_dir", str),
    "GALLERY_STORE_PATH": ("store_path", str),
    "GALLERY_CONCURRENCY": ("concurrency", int),
    "GALLERY_TIMEOUT_SECONDS": ("download_timeout_seconds", float),
    "GALLERY_ORGANIZE": ("organize", str),
    "GALLERY_LOG_LEVEL": ("log_level", str),
    "GALLERY_LOG_DIR": ("log_dir", str),
}


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file and return dict."""
    if not path.exists():
        return {}
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _expand_env_vars(data: Any) -> Any:
    """Recursively expand ${VAR_NAME} and ${VAR_NAME:-default} environment variables in config data."""
    if isinstance(data, dict):
        return {key: _expand_env_vars(value) for key, value in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item) for item in data]
    elif isinstance(data, str):
        pattern = r"\$\{([^}:]+)(?::-(([^}]*))?)?\}"

        def replacer(match):
            var_name = match.group(1)
            default_value = match.group(2) if match.group(2) is not None else match.group(0)
            return os.getenv(var_name, default_value)

        return re.sub(pattern, replacer, data)
    else:
        return data


def _default_listing_retry() -> RetryConfig:
    return RetryConfig(max_attempts=5, base_delay=1.0, max_delay=32.0)


@dataclass
class GalleryConfig:
    """Gallery downloader configuration.

    Configuration structure:
        gallery:
          token: ${GROUPME_TOKEN}
          api_base_url: https://api.groupme.com/v3
          output_dir: ./media
          store_path: ./data/queue.json
          concurrency: 3
          download_timeout_seconds: 30
          pacing_delay_seconds: 0.25
          organize: flat            # flat | date | user
          page_limit: 100
          listing_retry:
            max_attempts: 5
            base_delay: 1.0
            max_delay: 32.0
          logging:
            log_dir: ./logs
            log_level: INFO
            json_logs: true
            progress_interval_seconds: 10
    """

    token: str = ""
    api_base_url: str = DEFAULT_API_BASE_URL
    output_dir: str = "./media"
    store_path: str = "./data/queue.json"
    concurrency: int = 3
    download_timeout_seconds: float = 30.0
    pacing_delay_seconds: float = 0.25
    organize: str = "flat"
    page_limit: int = DEFAULT_PAGE_LIMIT
    listing_retry: RetryConfig = field(default_factory=_default_listing_retry)

    log_dir: str = "./logs"
    log_level: str = "INFO"
    json_logs: bool = True
    progress_interval_seconds: float = 10.0

    def validate(self) -> None:
        """Validate configuration for correctness and constraints.

        Raises:
            ConfigurationError: On the first invalid setting
        """
        if not self.api_base_url or not self.api_base_url.startswith(("http://", "https://")):
            raise ConfigurationError(
                f"api_base_url must be an http(s) URL, got {self.api_base_url!r}"
            )

        if isinstance(self.concurrency, bool) or not isinstance(self.concurrency, int):
            raise ConfigurationError(f"concurrency must be an integer, got {self.concurrency!r}")
        self._validate_range("concurrency", self.concurrency, MIN_CONCURRENCY, MAX_CONCURRENCY)

        self._validate_min("download_timeout_seconds", self.download_timeout_seconds, 0, inclusive=False)
        self._validate_min("pacing_delay_seconds", self.pacing_delay_seconds, 0, inclusive=True)
        self._validate_min("page_limit", self.page_limit, 1, inclusive=True)
        self._validate_min("progress_interval_seconds", self.progress_interval_seconds, 0, inclusive=True)

        if self.organize not in ORGANIZE_MODES:
            raise ConfigurationError(
                f"organize must be one of {list(ORGANIZE_MODES)}, got '{self.organize}'"
            )

        if self.log_level.upper() not in VALID_LOG_LEVELS:
            raise ConfigurationError(
                f"log_level must be one of {VALID_LOG_LEVELS}, got '{self.log_level}'"
            )

        if self.listing_retry.max_attempts < 1:
            raise ConfigurationError("listing_retry.max_attempts must be >= 1")

    @staticmethod
    def _validate_min(key: str, value: float, min_value: float, inclusive: bool) -> None:
        if inclusive and value < min_value:
            raise ConfigurationError(f"{key} must be >= {min_value}, got {value}")
        if not inclusive and value <= min_value:
            raise ConfigurationError(f"{key} must be > {min_value}, got {value}")

    @staticmethod
    def _validate_range(key: str, value: float, min_value: float, max_value: float) -> None:
        if not (min_value <= value <= max_value):
            raise ConfigurationError(
                f"{key} must be between {min_value} and {max_value}, got {value}"
            )


def _as_bool(value: Any) -> bool:
    # "false" from an expanded ${VAR} must not read as True
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _flatten_section(section: Dict[str, Any]) -> Dict[str, Any]:
    """Lift the nested ``logging:`` block to top-level keys."""
    flat = {k: v for k, v in section.items() if k != "logging"}
    flat.update(section.get("logging") or {})
    return flat


def _env_overrides() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for env_var, (key, convert) in ENV_OVERRIDES.items():
        raw = os.getenv(env_var)
        if raw is None or raw == "":
            continue
        try:
            values[key] = convert(raw)
        except ValueError as e:
            raise ConfigurationError(f"Invalid value for {env_var}: {raw!r}", cause=e) from e
    return values


def load_config(
    config_path: Optional[Path] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> GalleryConfig:
    """Load configuration from config.yaml, the environment and explicit overrides.

    A missing config file is not an error: defaults and the environment are
    enough to run.

    Raises:
        ConfigurationError: Malformed file or invalid setting
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_FILE

    try:
        yaml_data = _expand_env_vars(load_yaml(config_path))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {config_path}", cause=e) from e

    if yaml_data:
        logger.debug(f"Loaded configuration from file: {config_path}")

    section = yaml_data.get("gallery", yaml_data) if isinstance(yaml_data, dict) else {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Invalid config file {config_path}: 'gallery' must be a mapping")

    values = _flatten_section(section)
    values.update(_env_overrides())
    if overrides:
        logger.debug(f"Applying overrides: {list(overrides.keys())}")
        values.update({k: v for k, v in overrides.items() if v is not None})

    known = set(GalleryConfig.__dataclass_fields__)
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning(f"Ignoring unknown config keys: {unknown}")

    retry_values = values.pop("listing_retry", None) or {}
    if isinstance(retry_values, RetryConfig):
        listing_retry = retry_values
    else:
        listing_retry = RetryConfig(
            max_attempts=retry_values.get("max_attempts", 5),
            base_delay=retry_values.get("base_delay", 1.0),
            max_delay=retry_values.get("max_delay", 32.0),
        )

    try:
        config = GalleryConfig(
            token=str(values.get("token") or ""),
            api_base_url=str(values.get("api_base_url", DEFAULT_API_BASE_URL)),
            output_dir=str(values.get("output_dir", "./media")),
            store_path=str(values.get("store_path", "./data/queue.json")),
            concurrency=int(values.get("concurrency", 3)),
            download_timeout_seconds=float(values.get("download_timeout_seconds", 30.0)),
            pacing_delay_seconds=float(values.get("pacing_delay_seconds", 0.25)),
            organize=str(values.get("organize", "flat")),
            page_limit=int(values.get("page_limit", DEFAULT_PAGE_LIMIT)),
            listing_retry=listing_retry,
            log_dir=str(values.get("log_dir", "./logs")),
            log_level=str(values.get("log_level", "INFO")).upper(),
            json_logs=_as_bool(values.get("json_logs", True)),
            progress_interval_seconds=float(values.get("progress_interval_seconds", 10.0)),
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration value: {e}", cause=e) from e

    config.validate()
    return config


__all__ = [
    "DEFAULT_CONFIG_FILE",
    "GalleryConfig",
    "load_config",
    "load_yaml",
]
