"""Configuration management for ami-provider.

Settings are resolved through a fallback chain: environment variable,
then an options object handed to initialize() by the embedding controller,
then the [ami_provider] section of an INI file named by AMI_PROVIDER_CONFIG,
then the built-in default.
"""

from __future__ import annotations

import configparser
import logging
import os
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)

CONFIG_SECTION = "ami_provider"

# Module-level config cache
_config: Optional[Dict[str, Any]] = None
_options: Optional[Any] = None  # Options object (initialized by the embedding controller)


def initialize(options: Any) -> None:
    """Initialize config module with the controller's options object.

    Attributes named `ami_provider_<key>` on the object override the config
    file and defaults.

    Args:
        options: Parsed options object
    """
    global _options
    _options = options
    logger.debug("Config module initialized with options object")


def _parse_config_file(config_file: Optional[str] = None) -> Dict[str, Any]:
    """Parse the [ami_provider] section of an INI config file.

    Args:
        config_file: Path to config file. If None or missing, returns {}.

    Returns:
        Dict of raw string values from the section
    """
    if not config_file:
        return {}
    parser = configparser.ConfigParser()
    try:
        read = parser.read(config_file)
    except configparser.Error as exc:
        logger.warning("Failed to parse config file %s: %s", config_file, exc)
        return {}
    if not read:
        logger.debug("Config file %s not found, using defaults", config_file)
        return {}
    if not parser.has_section(CONFIG_SECTION):
        return {}
    return dict(parser.items(CONFIG_SECTION))


def _get_config() -> Dict[str, Any]:
    """Get parsed config dict, initializing if needed."""
    global _config
    if _config is None:
        _config = _parse_config_file(os.environ.get("AMI_PROVIDER_CONFIG"))
    return _config


def _get_config_value(
    key: str,
    default: Any,
    env_var: Optional[str] = None,
    converter: Optional[Callable[[Any], Any]] = None,
) -> Any:
    """Get config value with fallback chain: env var -> options -> config file -> default.

    Args:
        key: Config key name (in [ami_provider] section)
        default: Default value if not found
        env_var: Optional environment variable name (e.g., AMI_PROVIDER_KEY)
        converter: Optional function to convert string value (e.g., int, bool)

    Returns:
        Config value (converted if converter provided)
    """
    if env_var:
        env_value = os.environ.get(env_var)
        if env_value is not None:
            if converter:
                try:
                    return converter(env_value)
                except (ValueError, TypeError):
                    logger.warning(
                        "Invalid value for %s: %s, using default", env_var, env_value
                    )
                    return default
            return env_value

    if _options is not None:
        option_key = f"ami_provider_{key}"
        if hasattr(_options, option_key):
            value = getattr(_options, option_key)
            if converter and isinstance(value, str):
                try:
                    return converter(value)
                except (ValueError, TypeError):
                    logger.warning("Invalid value for %s: %s, using default", key, value)
                    return default
            return value

    value = _get_config().get(key)
    if value is not None:
        if converter:
            try:
                return converter(value)
            except (ValueError, TypeError):
                logger.warning(
                    "Invalid value for config key %s: %s, using default", key, value
                )
                return default
        return value

    return default


def _parse_bool(value: Any) -> bool:
    """Parse boolean value from config (string or bool).

    Accepts: True, "true", "True", "1", "yes", "on" -> True
             False, "false", "False", "0", "no", "off" -> False
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.lower() in ("true", "1", "yes", "on")
    return bool(value)


def _parse_list(value: Any) -> List[str]:
    """Parse a list from config.

    Accepts:
    - List: ["self", "amazon"]
    - String (comma or space separated): "self,amazon"
    """
    if isinstance(value, (list, tuple)):
        return [str(item) for item in value]
    if isinstance(value, str):
        return [item.strip() for item in value.replace(",", " ").split() if item.strip()]
    raise TypeError(f"cannot parse list from {type(value).__name__}")


def image_cache_ttl() -> int:
    """Resolved image set cache TTL in seconds (default: 60)."""
    return _get_config_value(
        "image_cache_ttl",
        60,
        env_var="AMI_PROVIDER_IMAGE_CACHE_TTL",
        converter=int,
    )


def version_cache_ttl() -> int:
    """Kubernetes version cache TTL in seconds (default: 900)."""
    return _get_config_value(
        "version_cache_ttl",
        900,
        env_var="AMI_PROVIDER_VERSION_CACHE_TTL",
        converter=int,
    )


def describe_page_size() -> int:
    """MaxResults sent with every DescribeImages page (default: 500)."""
    return _get_config_value(
        "describe_page_size",
        500,
        env_var="AMI_PROVIDER_DESCRIBE_PAGE_SIZE",
        converter=int,
    )


def default_owners() -> List[str]:
    """Owners queried when a selector term names none."""
    return _get_config_value(
        "default_owners",
        ["self", "amazon"],
        env_var="AMI_PROVIDER_DEFAULT_OWNERS",
        converter=_parse_list,
    )


def default_image_family() -> str:
    """Image family used when a node class declares none."""
    return _get_config_value(
        "default_image_family",
        "AL2",
        env_var="AMI_PROVIDER_DEFAULT_IMAGE_FAMILY",
    )


def aws_region() -> Optional[str]:
    """Region for the EC2 and SSM clients (None lets boto3 decide)."""
    return _get_config_value("aws_region", None, env_var="AMI_PROVIDER_AWS_REGION")


def aws_connect_timeout() -> int:
    """Seconds to wait for a connection to the AWS APIs (default: 10)."""
    return _get_config_value(
        "aws_connect_timeout",
        10,
        env_var="AMI_PROVIDER_AWS_CONNECT_TIMEOUT",
        converter=int,
    )


def aws_read_timeout() -> int:
    """Seconds to wait for an AWS API response (default: 30)."""
    return _get_config_value(
        "aws_read_timeout",
        30,
        env_var="AMI_PROVIDER_AWS_READ_TIMEOUT",
        converter=int,
    )


def aws_max_attempts() -> int:
    """Attempts botocore makes per AWS call, including the first (default: 3)."""
    return _get_config_value(
        "aws_max_attempts",
        3,
        env_var="AMI_PROVIDER_AWS_MAX_ATTEMPTS",
        converter=int,
    )


def monitoring_enabled() -> bool:
    """Enable the monitoring status server."""
    return _get_config_value(
        "monitoring_enabled",
        False,
        env_var="AMI_PROVIDER_MONITORING_ENABLED",
        converter=_parse_bool,
    )


def monitoring_bind() -> str:
    """Monitoring server bind address (default: "127.0.0.1:8080")."""
    value = _get_config_value(
        "monitoring_bind",
        "127.0.0.1:8080",
        env_var="AMI_PROVIDER_MONITORING_BIND",
    )
    if ":" not in value:
        logger.warning("Invalid monitoring_bind format, using default: 127.0.0.1:8080")
        return "127.0.0.1:8080"
    return value


def monitoring_history_ttl() -> int:
    """Seconds a recorded resolution stays in the monitoring registry (default: 3600)."""
    return _get_config_value(
        "monitoring_history_ttl",
        3600,
        env_var="AMI_PROVIDER_MONITORING_HISTORY_TTL",
        converter=int,
    )


def reset_config() -> None:
    """Reset config cache (useful for testing)."""
    global _config, _options
    _config = None
    _options = None
