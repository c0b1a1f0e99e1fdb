"""Printable URLs for the running dev server."""
from __future__ import annotations

import ipaddress
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlunsplit

from config.settings import UNSPECIFIED_HOSTS

from . import network


@dataclass(frozen=True)
class Urls:
    """URLs under which the dev server can be reached.

    Attributes:
        protocol: ``http`` or ``https``.
        port: Port the server binds to.
        pretty_host: ``localhost`` for unspecified binds, else the bind host.
        local_url: URL opened in the browser.
        lan_address: Private address advertised to other machines, if any.
        lan_url: ``local_url`` with ``lan_address`` as host, if any.
    """

    protocol: str
    port: int
    pretty_host: str
    local_url: str
    lan_address: Optional[str] = None
    lan_url: Optional[str] = None


def format_url(protocol: str, hostname: str, port: int) -> str:
    try:
        if ipaddress.ip_address(hostname).version == 6:
            hostname = f'[{hostname}]'
    except ValueError:
        pass
    return urlunsplit((protocol, f'{hostname}:{port}', '/', '', ''))


def prepare_urls(
    protocol: str,
    host: str,
    port: int,
    resolve_lan_address: Optional[Callable[[], Optional[str]]] = None,
) -> Urls:
    """Compute the URLs to print and open.

    Args:
        protocol: ``http`` or ``https``.
        host: Bind host; ``0.0.0.0`` and ``::`` display as ``localhost``.
        port: Resolved port.
        resolve_lan_address: Callable returning the LAN address; only consulted for
            unspecified binds. Defaults to ``devutils.network.lan_address``.
    """
    if host in UNSPECIFIED_HOSTS:
        resolve_lan_address = resolve_lan_address or network.lan_address
        pretty_host = 'localhost'
        lan = resolve_lan_address()
    else:
        pretty_host = host
        lan = None

    return Urls(
        protocol=protocol,
        port=port,
        pretty_host=pretty_host,
        local_url=format_url(protocol, pretty_host, port),
        lan_address=lan,
        lan_url=format_url(protocol, lan, port) if lan else None,
    )
