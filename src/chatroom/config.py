"""
Configuration

Settings are read from environment variables and can be overridden by
command-line flags in the entry points.

Environment variables:
    CHAT_DEFAULT_TRANSPORT: Transport for rooms created implicitly
                            ("direct" or "framed", default "direct")
    CHAT_FORMATTER: Message formatter ("plain" or "html", default "plain")
    CHAT_LOG_LEVEL: Logging level name (default "WARNING")
    CHAT_RECEIVE_TIMEOUT: Seconds receive waits for a message (default 0)
    CHAT_TRANSPORT_LOOPBACK: Feed sent payloads back as inbound (default off)
    WEBSOCKET_HOST: WebSocket server bind address (default "0.0.0.0")
    WEBSOCKET_PORT: WebSocket server port (default 8080)
"""

import logging
import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from .errors import ValidationError
from .formatters import get_formatter
from .transport import TransportKind

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """
    Runtime settings.

    Attributes:
        default_transport: Transport kind for rooms created by join/send
        formatter: Name of the formatter applied to sent content
        log_level: Logging level name
        receive_timeout: Seconds a receive poll may wait
        loopback: Whether transports feed sent payloads back as inbound
        ws_host: WebSocket server bind address
        ws_port: WebSocket server port
    """

    default_transport: TransportKind = TransportKind.DIRECT
    formatter: str = "plain"
    log_level: str = "WARNING"
    receive_timeout: float = 0.0
    loopback: bool = False
    ws_host: str = "0.0.0.0"
    ws_port: int = 8080

    def __post_init__(self):
        """Validate and normalize field values."""
        object.__setattr__(
            self, "default_transport", TransportKind.parse(self.default_transport)
        )
        get_formatter(self.formatter)
        level = str(self.log_level).upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValidationError(f"Unknown log level '{self.log_level}'")
        object.__setattr__(self, "log_level", level)
        if self.receive_timeout < 0:
            raise ValidationError("Receive timeout cannot be negative")
        if not 0 < self.ws_port < 65536:
            raise ValidationError(f"Invalid WebSocket port: {self.ws_port}")

    def with_overrides(self, **overrides) -> "Settings":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)


def _parse_bool(name: str, value: str) -> bool:
    key = value.strip().lower()
    if key in _TRUE_VALUES:
        return True
    if key in _FALSE_VALUES:
        return False
    raise ValidationError(f"{name} must be a boolean, got '{value}'")


def _parse_number(name: str, value: str, cast):
    try:
        return cast(value)
    except ValueError:
        raise ValidationError(f"{name} must be a number, got '{value}'")


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Load settings from environment variables.

    Args:
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        Settings instance

    Raises:
        ValidationError: If a variable holds an invalid value
    """
    env = os.environ if environ is None else environ
    defaults = Settings()

    return Settings(
        default_transport=env.get(
            "CHAT_DEFAULT_TRANSPORT", defaults.default_transport.value
        ),
        formatter=env.get("CHAT_FORMATTER", defaults.formatter),
        log_level=env.get("CHAT_LOG_LEVEL", defaults.log_level),
        receive_timeout=_parse_number(
            "CHAT_RECEIVE_TIMEOUT",
            env.get("CHAT_RECEIVE_TIMEOUT", str(defaults.receive_timeout)),
            float,
        ),
        loopback=_parse_bool(
            "CHAT_TRANSPORT_LOOPBACK",
            env.get("CHAT_TRANSPORT_LOOPBACK", ""),
        ),
        ws_host=env.get("WEBSOCKET_HOST", defaults.ws_host),
        ws_port=_parse_number(
            "WEBSOCKET_PORT",
            env.get("WEBSOCKET_PORT", str(defaults.ws_port)),
            int,
        ),
    )


def configure_logging(level: str, stream=None) -> None:
    """
    Configure root logging for an entry point.

    Args:
        level: Logging level name
        stream: Stream for log records (defaults to stderr)
    """
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.WARNING),
        format=LOG_FORMAT,
        stream=stream,
    )
