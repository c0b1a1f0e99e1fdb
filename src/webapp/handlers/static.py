"""Static content handlers.

This module serves everything the browser loads from the dev server:
compiled assets from the latest build, files from the public directory,
index.html for client-side routes, and a no-op service worker.

Example:
    # Register the catch-all app handler last
    app.router.add_get('/service-worker.js', noop_service_worker)
    app.router.add_get('/{tail:.*}', serve_app)
"""
from __future__ import annotations

from aiohttp import web

from compiler.bundler import INDEX_PATH
from compiler.compiler import Compiler
from devutils.mime import content_type_for
from devutils.public_files import resolve_public_file

from ..config import DevServerConfig

NOOP_SERVICE_WORKER = """\
// This service worker file is effectively a 'no-op' that will reset any
// previous service worker registered for the same host:port combination.
self.addEventListener('install', () => self.skipWaiting());

self.addEventListener('activate', () => {
  self.registration.unregister()
    .then(() => self.clients.matchAll({ type: 'window' }))
    .then(windowClients => {
      for (const windowClient of windowClients) {
        // Force open pages to refresh, so that they have a chance to load the
        // fresh navigation response from the local dev server.
        windowClient.navigate(windowClient.url);
      }
    });
});
"""


async def serve_app(request: web.Request) -> web.Response:
    """Serve a compiled asset, a public file, or index.html.

    Waits for the current build to finish first. Unknown paths fall back to
    index.html when the client accepts HTML, so client-side routes survive a
    page reload.

    Args:
        request: The aiohttp web request.

    Returns:
        The asset, the public file, index.html, or 404.
    """
    compiler: Compiler = request.app['compiler']
    config: DevServerConfig = request.app['config']
    result = await compiler.wait_until_valid()

    path = request.path
    if path == '/':
        path = INDEX_PATH

    asset = result.assets.get(path)
    if asset is not None:
        return web.Response(body=asset.body, content_type=asset.content_type)

    public_file = resolve_public_file(config.public_dir, path)
    if public_file is not None:
        return web.Response(
            body=public_file.read_bytes(),
            content_type=content_type_for(public_file.name),
        )

    accept = request.headers.get('Accept', '')
    index = result.assets.get(INDEX_PATH)
    if 'text/html' in accept and index is not None:
        return web.Response(body=index.body, content_type=index.content_type)

    return web.Response(status=404, text=f'Cannot {request.method} {request.path}')


async def noop_service_worker(request: web.Request) -> web.Response:
    """Serve a service worker that replaces any previously registered one."""
    return web.Response(text=NOOP_SERVICE_WORKER, content_type='application/javascript')
