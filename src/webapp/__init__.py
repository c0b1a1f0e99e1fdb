"""Development web server package."""
from __future__ import annotations

from .config import DevServerConfig, create_dev_server_config
from .server import DevServer

__all__ = ['DevServer', 'DevServerConfig', 'create_dev_server_config']
