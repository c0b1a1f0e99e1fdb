"""Typed development server settings.

DevServerSettings is built once at startup, after the dotenv cascade has been
loaded, and handed to every component that needs configuration. Values are
parsed the way the ``start`` script always parsed them: ``PORT`` like
JavaScript ``parseInt`` with a 3000 fallback, ``HTTPS`` only when it is the
literal ``true``.
"""
from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_PORT = 3000
DEFAULT_HOST = '0.0.0.0'
UNSPECIFIED_HOSTS = ('0.0.0.0', '::')

_LEADING_INT = re.compile(r'\s*([+-]?\d+)')


def parse_port(value: Any) -> int:
    """Parse a port the way ``parseInt(value, 10) || 3000`` does.

    Leading digits win (``'4000abc'`` is 4000); anything that yields no
    usable port (empty, non-numeric, zero, out of range) falls back to
    DEFAULT_PORT.
    """
    if isinstance(value, bool):
        return DEFAULT_PORT
    if isinstance(value, int):
        port = value
    else:
        match = _LEADING_INT.match(str(value or ''))
        if not match:
            return DEFAULT_PORT
        port = int(match.group(1))
    if port <= 0 or port > 65535:
        return DEFAULT_PORT
    return port


def _is_literal_true(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return value == 'true'


class DevServerSettings(BaseSettings):
    """Environment-driven configuration of the development server."""

    model_config = SettingsConfigDict(
        env_prefix='',
        extra='ignore',
        case_sensitive=False,
        frozen=True,
    )

    port: int = Field(default=DEFAULT_PORT, description="Desired port (PORT).")
    host: str = Field(default=DEFAULT_HOST, description="Bind address (HOST).")
    https: bool = Field(default=False, description="Serve over TLS when HTTPS=true.")
    browser: Optional[str] = Field(
        default=None,
        description="webbrowser controller name; 'none' disables opening a browser.",
    )
    ssl_crt_file: Optional[Path] = Field(default=None, description="TLS certificate (PEM).")
    ssl_key_file: Optional[Path] = Field(default=None, description="TLS private key (PEM).")
    dangerously_disable_host_check: bool = Field(
        default=False,
        description="Skip Host header validation even when a proxy is configured.",
    )

    @field_validator('port', mode='before')
    @classmethod
    def _parse_port(cls, value: Any) -> int:
        return parse_port(value)

    @field_validator('host', mode='before')
    @classmethod
    def _default_host(cls, value: Any) -> str:
        return str(value) if value else DEFAULT_HOST

    @field_validator('https', 'dangerously_disable_host_check', mode='before')
    @classmethod
    def _literal_true(cls, value: Any) -> bool:
        return _is_literal_true(value)

    @field_validator('browser', 'ssl_crt_file', 'ssl_key_file', mode='before')
    @classmethod
    def _empty_is_unset(cls, value: Any) -> Any:
        return value or None

    @property
    def protocol(self) -> str:
        return 'https' if self.https else 'http'

    @property
    def is_unspecified_host(self) -> bool:
        return self.host in UNSPECIFIED_HOSTS
