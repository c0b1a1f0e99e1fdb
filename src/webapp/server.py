"""Development web server.

DevServer serves a Compiler's output over HTTP(S) with aiohttp. Binding is
separate from construction so the caller can report bind errors itself;
compilation starts only once the socket is listening.

Example:
    server = DevServer(compiler, config, console)
    await server.listen(3000, '0.0.0.0')
    await server.wait_closed()
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from aiohttp import web
from rich.console import Console

from compiler.compiler import Compiler

from . import handlers
from .config import DevServerConfig

logger = logging.getLogger(__name__)


def setup_routes(app: web.Application) -> None:
    """Configure all application routes."""
    # Live reload
    app.router.add_get(handlers.WEBSOCKET_PATH, handlers.websocket_handler)
    app.router.add_get(handlers.CLIENT_SCRIPT_PATH, handlers.client_script)

    app.router.add_get('/service-worker.js', handlers.noop_service_worker)

    # Compiled assets, public files and history API fallback
    app.router.add_get('/{tail:.*}', handlers.serve_app)


async def on_shutdown(app: web.Application) -> None:
    """Close live reload connections so the runner can finish cleanup."""
    for ws in set(app['websocket_connections']):
        await ws.close()


class DevServer:
    """aiohttp application serving compiled assets with live reload.

    Args:
        compiler: Compiler whose builds are served; watched once listening.
        config: Dev server configuration.
        console: Console for proxy errors and other runtime messages.
    """

    def __init__(
        self,
        compiler: Compiler,
        config: DevServerConfig,
        console: Optional[Console] = None,
    ) -> None:
        self.compiler = compiler
        self.config = config
        self.console = console or Console()
        self.app = self.create_app()
        self._runner: Optional[web.AppRunner] = None
        self._watch_task: Optional[asyncio.Task] = None
        self._closing = asyncio.Event()

    def create_app(self) -> web.Application:
        app = web.Application(middlewares=[
            handlers.host_check_middleware,
            handlers.proxy_middleware,
        ])
        app['compiler'] = self.compiler
        app['config'] = self.config
        app['console'] = self.console
        app['websocket_connections'] = set()

        handlers.attach_live_reload(app, self.compiler.events)
        setup_routes(app)

        if self.config.proxy is not None:
            app.cleanup_ctx.append(handlers.proxy_session)
        app.on_shutdown.append(on_shutdown)
        return app

    async def listen(self, port: int, host: str) -> None:
        """Bind ``host:port`` and start watching sources.

        Raises:
            OSError: If the address cannot be bound. Nothing is left running.
        """
        runner = web.AppRunner(self.app, access_log=None)
        await runner.setup()
        site = web.TCPSite(runner, host=host, port=port, ssl_context=self.config.ssl_context)
        try:
            await site.start()
        except OSError:
            await runner.cleanup()
            raise
        scheme = 'https' if self.config.https else 'http'
        logger.info(f"Dev server listening on {scheme}://{host}:{port}")

        self._runner = runner
        self._watch_task = asyncio.create_task(self.compiler.watch())

    def request_close(self) -> None:
        """Ask ``wait_closed`` to return; safe to call from signal handlers."""
        self._closing.set()

    async def wait_closed(self) -> None:
        """Serve until ``request_close`` is called.

        Raises:
            Exception: Whatever ended the watch task, if it failed.
        """
        if self._watch_task is None:
            raise RuntimeError('DevServer.listen() has not been called')
        closing = asyncio.ensure_future(self._closing.wait())
        try:
            await asyncio.wait({closing, self._watch_task}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            closing.cancel()
        if self._watch_task.done():
            self._watch_task.result()

    async def close(self) -> None:
        if self._watch_task is not None and not self._watch_task.done():
            self._watch_task.cancel()
            try:
                await self._watch_task
            except asyncio.CancelledError:
                pass
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
        logger.info("Dev server stopped")
