"""Request proxying and Host header checks.

When package.json declares a ``proxy``, requests the dev server does not
answer itself (API calls, mostly) are forwarded to that backend. The host
check middleware rejects requests with unexpected Host headers so a
malicious page cannot reach the proxied backend through DNS rebinding.

Example:
    app = web.Application(middlewares=[host_check_middleware, proxy_middleware])
    app.cleanup_ctx.append(proxy_session)
"""
from __future__ import annotations

import ipaddress
import logging
from typing import AsyncIterator

import aiohttp
from aiohttp import web
from multidict import CIMultiDict
from rich.console import Console
from rich.markup import escape
from yarl import URL

from compiler.compiler import Compiler
from devutils.proxy import ProxyConfig

from ..config import DevServerConfig

logger = logging.getLogger(__name__)

# Never forwarded in either direction; aiohttp sets its own framing headers.
HOP_BY_HOP_HEADERS = frozenset({
    'connection',
    'keep-alive',
    'proxy-authenticate',
    'proxy-authorization',
    'te',
    'trailer',
    'trailers',
    'transfer-encoding',
    'upgrade',
    'content-length',
    'content-encoding',
})

LOCAL_HOSTNAMES = frozenset({'localhost', '127.0.0.1', '::1'})


async def proxy_session(app: web.Application) -> AsyncIterator[None]:
    """Cleanup context owning the ClientSession used for proxying."""
    app['proxy_session'] = aiohttp.ClientSession(
        cookie_jar=aiohttp.DummyCookieJar(),
        timeout=aiohttp.ClientTimeout(total=None),
    )
    yield
    await app['proxy_session'].close()


def _is_ip_literal(hostname: str) -> bool:
    try:
        ipaddress.ip_address(hostname.strip('[]'))
    except ValueError:
        return False
    return True


def is_allowed_host(host_header: str, config: DevServerConfig) -> bool:
    """Check a Host header against the addresses the server answers to.

    IP literals and localhost are always allowed, as are the bind host and
    the advertised LAN address.
    """
    try:
        hostname = URL(f'http://{host_header}').host if host_header else None
    except ValueError:
        return False
    if not hostname:
        return False
    hostname = hostname.lower()
    if hostname in LOCAL_HOSTNAMES or hostname.endswith('.localhost') or _is_ip_literal(hostname):
        return True
    return hostname in {config.host.lower(), (config.allowed_host or '').lower()}


@web.middleware
async def host_check_middleware(request: web.Request, handler) -> web.StreamResponse:
    config: DevServerConfig = request.app['config']
    if config.disable_host_check or is_allowed_host(request.host, config):
        return await handler(request)
    logger.warning(f"Rejected request with Host header {request.host!r}")
    return web.Response(status=403, text='Invalid Host header')


@web.middleware
async def proxy_middleware(request: web.Request, handler) -> web.StreamResponse:
    config: DevServerConfig = request.app['config']
    proxy = config.proxy
    if proxy is None:
        return await handler(request)

    if request.method in ('GET', 'HEAD'):
        # Compiled assets are answered here even when they look like API calls.
        compiler: Compiler = request.app['compiler']
        result = await compiler.wait_until_valid()
        if request.path in result.assets or request.path == '/service-worker.js':
            return await handler(request)

    if not proxy.should_proxy(request.method, request.path, request.headers.get('Accept')):
        return await handler(request)
    return await forward(request, proxy)


def _upstream_url(proxy: ProxyConfig, request: web.Request) -> URL:
    return URL(proxy.target + request.rel_url.raw_path_qs, encoded=True)


def _request_headers(request: web.Request, target: URL) -> CIMultiDict:
    headers = CIMultiDict(
        (name, value) for name, value in request.headers.items()
        if name.lower() not in HOP_BY_HOP_HEADERS and name.lower() != 'host'
    )
    headers['Host'] = target.host if target.is_default_port() else f'{target.host}:{target.port}'

    forwarded_for = request.headers.get('X-Forwarded-For')
    remote = request.remote or ''
    headers['X-Forwarded-For'] = f'{forwarded_for}, {remote}' if forwarded_for else remote
    headers['X-Forwarded-Host'] = request.host
    headers['X-Forwarded-Proto'] = request.scheme
    return headers


async def forward(request: web.Request, proxy: ProxyConfig) -> web.Response:
    """Forward ``request`` to the proxy target and relay the answer.

    Connection failures are reported on the console and answered with 500;
    the backend's own error statuses are relayed unchanged.
    """
    session: aiohttp.ClientSession = request.app['proxy_session']
    upstream_url = _upstream_url(proxy, request)
    headers = _request_headers(request, upstream_url)
    body = await request.read()

    try:
        async with session.request(
            request.method,
            upstream_url,
            headers=headers,
            data=body or None,
            allow_redirects=False,
            ssl=False,
        ) as upstream:
            payload = await upstream.read()
            response_headers = CIMultiDict(
                (name, value) for name, value in upstream.headers.items()
                if name.lower() not in HOP_BY_HOP_HEADERS
            )
            return web.Response(status=upstream.status, body=payload, headers=response_headers)
    except aiohttp.ClientError as e:
        console: Console = request.app['console']
        console.print(
            f'[red]Proxy error:[/red] Could not proxy request [cyan]{escape(request.path_qs)}[/cyan] '
            f'from [cyan]{escape(request.host)}[/cyan] to [cyan]{escape(proxy.target)}[/cyan].'
        )
        console.print(f'({escape(str(e))})')
        console.print()
        logger.debug(f"Proxying {request.method} {request.path_qs} failed", exc_info=True)
        return web.Response(
            status=500,
            text=(
                f'Proxy error: Could not proxy request {request.path_qs} '
                f'from {request.host} to {proxy.target} ({type(e).__name__}).'
            ),
        )
