"""WebSocket handlers for live reload.

Browsers load a small client script that connects to ``/__devserver/ws``.
Every build is announced to all connected clients; the client reloads the
page when a new build succeeds (with or without warnings) and logs build
errors to the browser console.

Messages (JSON):
    {'type': 'invalid'}                       a rebuild started
    {'type': 'hash', 'data': <hash>}          a build finished
    {'type': 'ok'}                            ... without problems
    {'type': 'warnings', 'data': [...]}       ... with warnings
    {'type': 'errors', 'data': [...]}         ... with errors

Example:
    attach_live_reload(app, compiler.events)
    app.router.add_get(WEBSOCKET_PATH, websocket_handler)
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

from aiohttp import web, WSMsgType

from compiler.bundler import BuildResult
from compiler.compiler import Compiler
from compiler.events import DONE, INVALID, EventChannel

logger = logging.getLogger(__name__)

WEBSOCKET_PATH = '/__devserver/ws'
CLIENT_SCRIPT_PATH = '/__devserver/client.js'
CLIENT_SCRIPT_FILE = Path(__file__).parent.parent / 'static' / 'client.js'


def build_messages(result: BuildResult) -> List[Dict[str, Any]]:
    """Messages announcing a finished build."""
    messages: List[Dict[str, Any]] = [{'type': 'hash', 'data': result.hash}]
    if result.has_errors:
        messages.append({'type': 'errors', 'data': result.errors})
    elif result.has_warnings:
        messages.append({'type': 'warnings', 'data': result.warnings})
    else:
        messages.append({'type': 'ok'})
    return messages


async def broadcast(connections: Set[web.WebSocketResponse], messages: List[Dict[str, Any]]) -> None:
    """Send messages to every open connection, dropping broken ones."""
    # Copy: handlers add and discard connections while we await sends.
    for ws in connections.copy():
        if ws.closed:
            connections.discard(ws)
            continue
        try:
            for message in messages:
                await ws.send_str(json.dumps(message))
        except ConnectionError as e:
            logger.debug(f"Dropping live reload client: {e}")
            connections.discard(ws)


def attach_live_reload(app: web.Application, events: EventChannel) -> None:
    """Forward compiler events to the app's WebSocket clients."""
    connections: Set[web.WebSocketResponse] = app['websocket_connections']

    async def on_invalid(changed: Optional[Set[Path]]) -> None:
        await broadcast(connections, [{'type': 'invalid'}])

    async def on_done(result: BuildResult) -> None:
        await broadcast(connections, build_messages(result))

    events.subscribe(INVALID, on_invalid)
    events.subscribe(DONE, on_done)


async def websocket_handler(request: web.Request) -> web.WebSocketResponse:
    """Handle a live reload client connection.

    The client immediately receives the state of the latest build, then
    every later build as it happens. Incoming messages are ignored.

    Args:
        request: The aiohttp web request containing WebSocket upgrade.

    Returns:
        WebSocketResponse: The established WebSocket connection.
    """
    ws = web.WebSocketResponse(heartbeat=30)
    await ws.prepare(request)

    connections: Set[web.WebSocketResponse] = request.app['websocket_connections']
    compiler: Compiler = request.app['compiler']

    connections.add(ws)
    try:
        if compiler.is_valid and compiler.last_result is not None:
            await broadcast({ws}, build_messages(compiler.last_result))
        async for msg in ws:
            if msg.type == WSMsgType.ERROR:
                logger.debug(f"Live reload connection closed with {ws.exception()}")
                break
    finally:
        connections.discard(ws)

    return ws


async def client_script(request: web.Request) -> web.Response:
    """Serve the live reload browser client."""
    return web.Response(
        text=CLIENT_SCRIPT_FILE.read_text(encoding='utf-8'),
        content_type='application/javascript',
    )
