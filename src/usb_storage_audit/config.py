"""
Configuration management for the USB storage audit.

Settings are resolved once at startup from, in increasing precedence:
built-in defaults, an optional YAML file, environment variables, and
command-line overrides.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._types import InterfaceClassPolicy, OutputFormat, WindowsMediaFilter

logger = logging.getLogger(__name__)


# Environment variable -> config field
ENV_VARS = {
    'ALLOWLIST_ENDPOINT': 'allowlist_endpoint',
    'INTERFACE_CLASS_POLICY': 'interface_class_policy',
    'WINDOWS_MEDIA_FILTER': 'windows_media_filter',
    'WINDOWS_MIN_FIELDS': 'windows_min_fields',
    'OUTPUT_FORMAT': 'output_format',
    'INCLUDE_NAME': 'include_name',
    'COMMAND_TIMEOUT': 'command_timeout',
    'FETCH_TIMEOUT': 'fetch_timeout',
    'LOG_LEVEL': 'log_level',
}


class AuditConfig(BaseModel):
    """USB storage audit configuration."""

    # ========================================================================
    # Allow-list
    # ========================================================================

    allowlist_endpoint: str = Field(
        ...,
        description="URL returning one authorized serial per line"
    )

    # ========================================================================
    # Classification
    # ========================================================================

    interface_class_policy: InterfaceClassPolicy = Field(
        default=InterfaceClassPolicy.CLASS,
        description="Mass-storage match on ID_USB_INTERFACES: class or exact"
    )

    windows_media_filter: WindowsMediaFilter = Field(
        default=WindowsMediaFilter.REMOVABLE,
        description="wmic diskdrive filter: removable media or USB interface"
    )

    windows_min_fields: int = Field(
        default=2,
        ge=2,
        le=3,
        description="Minimum tokens per wmic row when the header has no named columns"
    )

    # ========================================================================
    # Output
    # ========================================================================

    output_format: OutputFormat = Field(
        default=OutputFormat.JSON,
        description="Report rendering: json or text"
    )

    include_name: bool = Field(
        default=True,
        description="Include the device model name in the report"
    )

    # ========================================================================
    # Timeouts
    # ========================================================================

    command_timeout: float = Field(
        default=10.0,
        ge=1,
        le=300,
        description="Seconds to wait for lsusb/udevadm/wmic"
    )

    fetch_timeout: float = Field(
        default=10.0,
        ge=1,
        le=300,
        description="Seconds to wait for the allow-list endpoint"
    )

    # ========================================================================
    # Logging
    # ========================================================================

    log_level: str = Field(
        default="INFO",
        description="Log level"
    )

    # ========================================================================
    # Validators
    # ========================================================================

    @field_validator('allowlist_endpoint')
    @classmethod
    def validate_allowlist_endpoint(cls, v):
        v = v.strip()
        if not v.startswith(('http://', 'https://')):
            raise ValueError('allowlist_endpoint must be an http:// or https:// URL')
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        v = v.upper()
        if v not in ['DEBUG', 'INFO', 'WARNING', 'ERROR']:
            raise ValueError('log_level must be DEBUG, INFO, WARNING, or ERROR')
        return v

    model_config = ConfigDict(
        validate_assignment=True,
        extra='forbid'  # Reject unknown fields
    )


def _read_yaml(path: Path) -> dict[str, Any]:
    """Read config keys from a YAML file."""
    with open(path) as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Config file {path} is not valid YAML: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a mapping")
    return data


def _read_env() -> dict[str, Any]:
    """Collect config keys from environment variables that are set."""
    values: dict[str, Any] = {}
    for env_var, field_name in ENV_VARS.items():
        raw = os.environ.get(env_var)
        if raw is None or raw == '':
            continue
        if field_name == 'include_name':
            values[field_name] = raw.lower() == 'true'
        else:
            values[field_name] = raw
    return values


def load_config(
    path: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
) -> AuditConfig:
    """
    Load configuration.

    Args:
        path: Optional YAML config file
        overrides: Values from the command line (None entries ignored)

    Returns:
        AuditConfig: Validated configuration

    Raises:
        FileNotFoundError: If path is given but missing
        ValueError: If the file is not a YAML mapping
        pydantic.ValidationError: If settings are missing or invalid
    """
    config_dict: dict[str, Any] = {}

    if path is not None:
        config_dict.update(_read_yaml(path))
        logger.debug(f"Loaded config file {path}")

    config_dict.update(_read_env())

    if overrides:
        config_dict.update({k: v for k, v in overrides.items() if v is not None})

    return AuditConfig(**config_dict)


# Example usb_audit.yaml:
"""
allowlist_endpoint: "http://10.10.20.1/serial.php"
interface_class_policy: "class"
windows_media_filter: "removable"
windows_min_fields: 2
output_format: "json"
include_name: true
command_timeout: 10
fetch_timeout: 10
log_level: "INFO"
"""
