"""
Connection models for py2nanonis.

Classes:
    ConnectionConfig: Immutable timeouts and framing options for a connection
    ClientSettings: Where to connect plus a ConnectionConfig, loadable from YAML

Example settings file:

    host: 192.168.1.50
    port: 6501
    connect_timeout: 5.0
    read_timeout: 10.0
    write_timeout: 10.0
    error_placement: leading
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

from ..core.errors import ConfigurationError, ErrorCodes
from ..core.protocol import ErrorPlacement

logger = logging.getLogger(__name__)

DEFAULT_PORT = 6501


def _check_timeout(name: str, value: Optional[float], errors: List[str], allow_none: bool) -> None:
    if value is None:
        if not allow_none:
            errors.append(f"{name} is required")
        return
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        errors.append(f"{name} must be a number: {value!r}")
    elif value <= 0:
        errors.append(f"{name} must be positive: {value}")


@dataclass(frozen=True)
class ConnectionConfig:
    """
    Immutable configuration for a Nanonis TCP connection.

    Attributes:
        connect_timeout: Seconds to wait for the TCP handshake (default: 5.0)
        read_timeout: Seconds to wait for each complete response header or
            body; None blocks indefinitely
        write_timeout: Seconds to wait for a request to be written; None
            blocks indefinitely
        error_placement: Where the server puts the error block in each
            response (default: LEADING, ahead of the results; TRAILING for
            servers that append it)

    Example:
        >>> config = ConnectionConfig(read_timeout=10.0)
        >>> valid, errors = config.validate()
    """

    connect_timeout: float = 5.0
    read_timeout: Optional[float] = None
    write_timeout: Optional[float] = None
    error_placement: ErrorPlacement = ErrorPlacement.LEADING

    def validate(self) -> Tuple[bool, List[str]]:
        """
        Validate the connection configuration.

        Returns:
            Tuple of (is_valid, list_of_error_messages)

        Validation rules:
            - connect_timeout must be a positive number
            - read_timeout and write_timeout must be positive or None
            - error_placement must be an ErrorPlacement
        """
        errors = []

        _check_timeout("connect_timeout", self.connect_timeout, errors, allow_none=False)
        _check_timeout("read_timeout", self.read_timeout, errors, allow_none=True)
        _check_timeout("write_timeout", self.write_timeout, errors, allow_none=True)

        if not isinstance(self.error_placement, ErrorPlacement):
            errors.append(f"Invalid error placement: {self.error_placement!r}")

        return (len(errors) == 0, errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'connect_timeout': self.connect_timeout,
            'read_timeout': self.read_timeout,
            'write_timeout': self.write_timeout,
            'error_placement': self.error_placement.value,
        }


@dataclass(frozen=True)
class ClientSettings:
    """
    Target address and connection options, as stored in a settings file.

    Attributes:
        host: Host name or IP address of the Nanonis PC
        port: TCP Programming Interface port (default: 6501)
        config: Timeouts and framing options
    """

    host: str
    port: int = DEFAULT_PORT
    config: ConnectionConfig = field(default_factory=ConnectionConfig)

    def validate(self) -> Tuple[bool, List[str]]:
        """Validate address and config; returns (is_valid, errors)."""
        errors = []
        if not isinstance(self.host, str) or not self.host.strip():
            errors.append(f"Invalid host: {self.host!r}")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not (1 <= self.port <= 65535):
            errors.append(f"Port out of range (1-65535): {self.port}")
        errors.extend(self.config.validate()[1])
        return (len(errors) == 0, errors)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientSettings":
        """
        Build settings from a parsed settings file.

        Raises:
            ConfigurationError: On unknown keys, a missing host or invalid values
        """
        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Settings must be a mapping, got {type(data).__name__}",
                error_code=ErrorCodes.CONFIG_INVALID
            )

        known = {'host', 'port', 'connect_timeout', 'read_timeout', 'write_timeout', 'error_placement'}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(
                f"Unknown settings: {', '.join(map(str, unknown))}",
                error_code=ErrorCodes.CONFIG_INVALID,
                setting_name=str(unknown[0])
            )
        if 'host' not in data:
            raise ConfigurationError(
                "Missing required setting: host",
                error_code=ErrorCodes.CONFIG_INVALID,
                setting_name='host'
            )

        placement = data.get('error_placement', ErrorPlacement.LEADING.value)
        try:
            placement = ErrorPlacement(str(placement).lower())
        except ValueError:
            raise ConfigurationError(
                f"Invalid error_placement: {placement!r} (expected 'leading' or 'trailing')",
                error_code=ErrorCodes.CONFIG_INVALID,
                setting_name='error_placement'
            ) from None

        config = ConnectionConfig(
            connect_timeout=data.get('connect_timeout', 5.0),
            read_timeout=data.get('read_timeout'),
            write_timeout=data.get('write_timeout'),
            error_placement=placement
        )
        settings = cls(host=data['host'], port=data.get('port', DEFAULT_PORT), config=config)

        valid, errors = settings.validate()
        if not valid:
            raise ConfigurationError(
                f"Invalid settings: {'; '.join(errors)}",
                error_code=ErrorCodes.CONFIG_INVALID
            )
        return settings

    def to_dict(self) -> Dict[str, Any]:
        data = {'host': self.host, 'port': self.port}
        data.update(self.config.to_dict())
        return data


def load_settings(path: Union[str, Path]) -> ClientSettings:
    """
    Load ClientSettings from a YAML file.

    Raises:
        ConfigurationError: If the file is missing, is not valid YAML or
            holds invalid settings
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(
            f"Settings file not found: {path}",
            error_code=ErrorCodes.CONFIG_NOT_FOUND,
            context={'path': str(path)}
        )

    try:
        with open(path, 'r') as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse settings file {path}: {e}",
            error_code=ErrorCodes.CONFIG_INVALID,
            cause=e,
            context={'path': str(path)}
        ) from e

    settings = ClientSettings.from_dict(data or {})
    logger.debug(f"Loaded settings from {path}: {settings.host}:{settings.port}")
    return settings


def save_settings(settings: ClientSettings, path: Union[str, Path]) -> None:
    """Write ClientSettings to a YAML file."""
    path = Path(path)
    with open(path, 'w') as f:
        yaml.dump(settings.to_dict(), f, default_flow_style=False, sort_keys=False)
    logger.debug(f"Saved settings to {path}")
