"""Exceptions raised by the startup flow."""
from __future__ import annotations


class DevStartError(RuntimeError):
    """Base class for errors that stop the dev server from starting."""


class PortDetectionError(DevStartError):
    """Raised when no free port can be checked on the requested host."""


class ProxyConfigError(DevStartError):
    """Raised when the ``proxy`` field of package.json is unusable."""


class SSLConfigError(DevStartError):
    """Raised when HTTPS is requested without a usable certificate."""
