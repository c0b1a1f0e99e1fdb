"""Validation of the ``proxy`` field from package.json.

The dev server can forward API calls to a backend during development. The
setting is a single URL; this module validates it and decides, per request,
whether the request is meant for the backend or for the dev server itself.

Example:
    proxy = prepare_proxy(app_package.proxy, paths.app_public)
    if proxy and proxy.should_proxy('POST', '/api/todos', 'application/json'):
        ...
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from .errors import ProxyConfigError
from .public_files import resolve_public_file

# Paths the dev server always answers itself.
_NEVER_PROXY = re.compile(r'^/(index\.html$|__devserver/)')

_USAGE = (
    'When specified, "proxy" in package.json must be a string.\n'
    'Instead, the type of "proxy" was "{kind}".\n'
    'Either remove "proxy" from package.json, or make it a string '
    'starting with http:// or https://.'
)


@dataclass(frozen=True)
class ProxyConfig:
    """A validated proxy target.

    Attributes:
        target: Backend URL, e.g. ``http://localhost:4000``.
        public_dir: Files existing here are served, never proxied.
    """

    target: str
    public_dir: Optional[Path] = None

    def _is_public_file(self, path: str) -> bool:
        if self.public_dir is None:
            return False
        return resolve_public_file(self.public_dir, path) is not None

    def should_proxy(self, method: str, path: str, accept: Optional[str]) -> bool:
        """Decide whether a request goes to the backend.

        Non-GET/HEAD requests are always proxied. GET/HEAD requests are
        proxied unless they target the dev server's own paths or a public
        file, or they accept ``text/html`` (page navigations belong to the
        history API fallback).
        """
        if method.upper() not in ('GET', 'HEAD'):
            return True
        if _NEVER_PROXY.match(path) or self._is_public_file(path):
            return False
        return bool(accept) and 'text/html' not in accept


def prepare_proxy(proxy_setting: Any, public_dir: Optional[Path] = None) -> Optional[ProxyConfig]:
    """Validate the ``proxy`` setting.

    Args:
        proxy_setting: Raw value of ``proxy`` from package.json.
        public_dir: The app's public directory.

    Returns:
        ProxyConfig, or None when no proxy is configured.

    Raises:
        ProxyConfigError: If the value is not an http(s) URL string.
    """
    if proxy_setting is None:
        return None
    if not isinstance(proxy_setting, str):
        kind = 'object' if isinstance(proxy_setting, (dict, list)) else type(proxy_setting).__name__
        raise ProxyConfigError(_USAGE.format(kind=kind))
    if not proxy_setting.startswith(('http://', 'https://')):
        raise ProxyConfigError(
            'When "proxy" is specified in package.json it must start with '
            'either http:// or https://'
        )
    return ProxyConfig(target=proxy_setting.rstrip('/'), public_dir=public_dir)
