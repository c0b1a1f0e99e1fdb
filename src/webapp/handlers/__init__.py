"""Dev server handlers package.

This package provides the HTTP, WebSocket and middleware handlers of the
development server. The handlers are organized by functionality:

- static: compiled assets, public files, history fallback, service worker
- livereload: WebSocket build notifications and the browser client
- proxy: backend proxying and Host header validation

Example:
    from webapp.handlers import serve_app, websocket_handler

    app.router.add_get(WEBSOCKET_PATH, websocket_handler)
    app.router.add_get('/{tail:.*}', serve_app)
"""
from __future__ import annotations

# Live reload handlers
from .livereload import (
    WEBSOCKET_PATH,
    CLIENT_SCRIPT_PATH,
    attach_live_reload,
    broadcast,
    build_messages,
    client_script,
    websocket_handler,
)

# Proxy handlers
from .proxy import (
    forward,
    host_check_middleware,
    is_allowed_host,
    proxy_middleware,
    proxy_session,
)

# Static content handlers
from .static import (
    noop_service_worker,
    serve_app,
)

# Public API exports
__all__ = [
    # Live reload
    'WEBSOCKET_PATH',
    'CLIENT_SCRIPT_PATH',
    'attach_live_reload',
    'broadcast',
    'build_messages',
    'client_script',
    'websocket_handler',

    # Proxy
    'forward',
    'host_check_middleware',
    'is_allowed_host',
    'proxy_middleware',
    'proxy_session',

    # Static
    'noop_service_worker',
    'serve_app',
]
