"""LAN address discovery."""
from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Optional

logger = logging.getLogger(__name__)

# Never contacted: connecting a UDP socket only selects the outgoing interface.
_ROUTE_ADDRESS = ('10.255.255.255', 1)


def lan_address() -> Optional[str]:
    """Return this machine's private IPv4 address, or None if there is none.

    Only private (RFC 1918) addresses are returned; a public address is not
    something to advertise as "On Your Network".
    """
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(_ROUTE_ADDRESS)
            address = s.getsockname()[0]
    except OSError as e:
        logger.debug(f"Could not determine LAN address: {e}")
        return None

    ip = ipaddress.ip_address(address)
    if ip.is_loopback or ip.is_unspecified or not ip.is_private:
        return None
    return address
