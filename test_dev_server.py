"""Tests for the aiohttp dev server: assets, fallback, proxy and live reload."""

import socket
import ssl

import aiohttp
import pytest
from aiohttp import web
from aiohttp.test_utils import TestClient, TestServer

from compiler.bundler import AssetBundler
from compiler.compiler import Compiler
from compiler.watcher import FileWatcher
from config.settings import DevServerSettings
from devutils import certificates
from devutils.errors import SSLConfigError
from devutils.proxy import ProxyConfig
from webapp.config import DevServerConfig, build_ssl_context, create_dev_server_config
from webapp.handlers.livereload import CLIENT_SCRIPT_PATH, WEBSOCKET_PATH
from webapp.handlers.proxy import is_allowed_host
from webapp.server import DevServer

CLIENT_ENV = {'APP_TITLE': 'My App', 'NODE_ENV': 'development', 'PUBLIC_URL': ''}
BUNDLE_TAG = '<script type="module" src="/static/js/bundle.js"></script>'


def make_server(app_paths, console, **config):
    bundler = AssetBundler(app_paths, CLIENT_ENV, html_scripts=[CLIENT_SCRIPT_PATH])
    compiler = Compiler(bundler, FileWatcher([app_paths.app_src], interval=0.01))
    return DevServer(compiler, DevServerConfig(public_dir=app_paths.app_public, **config), console)


@pytest.fixture
async def server(app_paths, console):
    server = make_server(app_paths, console)
    await server.compiler.compile()
    return server


@pytest.fixture
async def client(server):
    async with TestClient(TestServer(server.app)) as client:
        yield client


async def echo(request):
    return web.json_response({
        'method': request.method,
        'path': request.path_qs,
        'host': request.headers.get('Host'),
        'forwarded_host': request.headers.get('X-Forwarded-Host'),
        'body': await request.text(),
    })


@pytest.fixture
async def backend():
    app = web.Application()
    app.router.add_route('*', '/{tail:.*}', echo)
    async with TestServer(app) as backend:
        yield backend


@pytest.fixture
async def proxied_client(app_paths, console, backend):
    target = f'http://{backend.host}:{backend.port}'
    server = make_server(
        app_paths,
        console,
        proxy=ProxyConfig(target=target, public_dir=app_paths.app_public),
        disable_host_check=False,
    )
    await server.compiler.compile()
    async with TestClient(TestServer(server.app)) as client:
        yield client


# Static content

async def test_root_serves_index_html(client):
    response = await client.get('/')

    assert response.status == 200
    assert response.content_type == 'text/html'
    text = await response.text()
    assert '<title>My App</title>' in text
    assert BUNDLE_TAG in text
    assert f'<script src="{CLIENT_SCRIPT_PATH}"></script>' in text


async def test_serves_bundle(client):
    response = await client.get('/static/js/bundle.js')

    assert response.status == 200
    assert response.content_type == 'application/javascript'
    assert "import App from './App';" in await response.text()


async def test_serves_public_file(client):
    response = await client.get('/favicon.ico')

    assert response.status == 200
    assert await response.read() == b'\x00\x00\x01\x00'


async def test_history_fallback_for_html_requests(client):
    response = await client.get('/todos/42', headers={'Accept': 'text/html,application/xhtml+xml'})

    assert response.status == 200
    assert BUNDLE_TAG in await response.text()


async def test_unknown_path_without_html_accept(client):
    response = await client.get('/missing.json', headers={'Accept': 'application/json'})

    assert response.status == 404
    assert await response.text() == 'Cannot GET /missing.json'


async def test_noop_service_worker(client):
    response = await client.get('/service-worker.js')

    assert response.status == 200
    assert 'self.registration.unregister()' in await response.text()


async def test_client_script(client):
    response = await client.get(CLIENT_SCRIPT_PATH)

    assert response.status == 200
    assert 'WebSocket' in await response.text()


# Live reload

async def test_live_reload_announces_builds(client, server, app_paths):
    async with client.ws_connect(WEBSOCKET_PATH) as ws:
        first_hash = await ws.receive_json(timeout=5)
        assert first_hash['type'] == 'hash'
        assert await ws.receive_json(timeout=5) == {'type': 'ok'}

        (app_paths.app_src / 'App.js').write_text("import './gone';\n", encoding='utf-8')
        await server.compiler.invalidate({app_paths.app_src / 'App.js'})
        assert await ws.receive_json(timeout=5) == {'type': 'invalid'}

        await server.compiler.compile()
        second_hash = await ws.receive_json(timeout=5)
        errors = await ws.receive_json(timeout=5)

    assert second_hash['data'] != first_hash['data']
    assert errors['type'] == 'errors'
    assert "Can't resolve './gone'" in errors['data'][0]


# Host check

async def test_host_check_rejects_unknown_host(proxied_client):
    response = await proxied_client.get('/', headers={'Host': 'evil.example.com'})

    assert response.status == 403
    assert await response.text() == 'Invalid Host header'


async def test_host_check_accepts_localhost(proxied_client):
    response = await proxied_client.get('/', headers={'Host': 'localhost:3000', 'Accept': 'text/html'})

    assert response.status == 200
    assert BUNDLE_TAG in await response.text()


async def test_host_check_disabled_without_proxy(client):
    response = await client.get('/', headers={'Host': 'evil.example.com'})

    assert response.status == 200


@pytest.mark.parametrize('host_header, expected', [
    ('localhost:3000', True),
    ('app.localhost', True),
    ('127.0.0.1:3000', True),
    ('[::1]:3000', True),
    ('192.168.1.20:3000', True),
    ('dev.example.com', True),
    ('DEV.EXAMPLE.COM:3000', True),
    ('evil.example.com', False),
    ('', False),
])
def test_is_allowed_host(tmp_path, host_header, expected):
    config = DevServerConfig(public_dir=tmp_path, host='dev.example.com', allowed_host='192.168.1.20')

    assert is_allowed_host(host_header, config) is expected


# Proxy

async def test_proxy_forwards_api_requests(proxied_client, backend):
    response = await proxied_client.get('/api/todos?done=1', headers={'Accept': 'application/json'})

    assert response.status == 200
    payload = await response.json()
    assert payload['method'] == 'GET'
    assert payload['path'] == '/api/todos?done=1'
    assert payload['host'] == f'{backend.host}:{backend.port}'
    assert payload['forwarded_host'] == f'{proxied_client.host}:{proxied_client.port}'


async def test_proxy_forwards_other_methods(proxied_client):
    response = await proxied_client.post('/api/todos', data='{"title": "write tests"}')

    assert response.status == 200
    payload = await response.json()
    assert payload['method'] == 'POST'
    assert payload['body'] == '{"title": "write tests"}'


async def test_proxy_leaves_navigation_to_history_fallback(proxied_client):
    response = await proxied_client.get('/api/todos', headers={'Accept': 'text/html'})

    assert response.status == 200
    assert BUNDLE_TAG in await response.text()


async def test_proxy_leaves_compiled_assets_alone(proxied_client):
    response = await proxied_client.get('/static/js/bundle.js', headers={'Accept': '*/*'})

    assert response.status == 200
    assert "import App from './App';" in await response.text()


async def test_proxy_error_is_reported(app_paths, console, output):
    server = make_server(app_paths, console, proxy=ProxyConfig(target='http://127.0.0.1:1'))
    await server.compiler.compile()

    async with TestClient(TestServer(server.app)) as client:
        response = await client.get('/api/todos', headers={'Accept': 'application/json'})
        text = await response.text()

    assert response.status == 500
    assert text.startswith('Proxy error: Could not proxy request /api/todos')
    assert 'Proxy error: Could not proxy request /api/todos' in output.getvalue()
    assert 'to http://127.0.0.1:1.' in output.getvalue()


# Listening

async def test_listen_reports_busy_port(app_paths, console):
    server = make_server(app_paths, console)
    with socket.socket() as sock:
        sock.bind(('127.0.0.1', 0))
        sock.listen()
        busy = sock.getsockname()[1]

        with pytest.raises(OSError):
            await server.listen(busy, '127.0.0.1')


async def test_wait_closed_requires_listen(app_paths, console):
    server = make_server(app_paths, console)

    with pytest.raises(RuntimeError):
        await server.wait_closed()


async def test_listen_serves_until_closed(app_paths, console):
    with socket.socket() as sock:
        sock.bind(('127.0.0.1', 0))
        port = sock.getsockname()[1]

    server = make_server(app_paths, console)
    await server.listen(port, '127.0.0.1')
    try:
        await server.compiler.wait_until_valid()
        async with aiohttp.ClientSession() as session:
            async with session.get(f'http://127.0.0.1:{port}/static/js/bundle.js') as response:
                assert response.status == 200

        server.request_close()
        await server.wait_closed()
    finally:
        await server.close()


# Configuration

def test_host_check_enabled_only_with_proxy(app_paths, clean_env):
    settings = DevServerSettings()
    proxy = ProxyConfig(target='http://localhost:4000')

    assert create_dev_server_config(settings, app_paths, None, None).disable_host_check
    assert not create_dev_server_config(settings, app_paths, proxy, None).disable_host_check

    clean_env.setenv('DANGEROUSLY_DISABLE_HOST_CHECK', 'true')
    assert create_dev_server_config(DevServerSettings(), app_paths, proxy, None).disable_host_check


def test_https_without_certificate_uses_self_signed(app_paths, clean_env):
    clean_env.setenv('HTTPS', 'true')

    config = create_dev_server_config(DevServerSettings(), app_paths, None, '192.168.1.20')

    assert config.https
    assert isinstance(config.ssl_context, ssl.SSLContext)


def test_self_signed_certificate_names_specific_host(app_paths, clean_env, monkeypatch):
    clean_env.setenv('HTTPS', 'true')
    clean_env.setenv('HOST', 'dev.example.com')
    seen = []

    def generate_self_signed(cert_file, key_file, hosts=()):
        seen.append(list(hosts))
        certificates.generate_self_signed(cert_file, key_file, hosts)

    monkeypatch.setattr('webapp.config.generate_self_signed', generate_self_signed)

    create_dev_server_config(DevServerSettings(), app_paths, None, '192.168.1.20')
    clean_env.setenv('HOST', '0.0.0.0')
    create_dev_server_config(DevServerSettings(), app_paths, None, '192.168.1.20')

    assert seen == [['dev.example.com', '192.168.1.20'], ['192.168.1.20']]


def test_https_with_only_one_certificate_file(tmp_path, clean_env):
    (tmp_path / 'dev.crt').write_text('', encoding='utf-8')
    clean_env.setenv('SSL_CRT_FILE', str(tmp_path / 'dev.crt'))

    with pytest.raises(SSLConfigError, match='only one of SSL_CRT_FILE and SSL_KEY_FILE'):
        build_ssl_context(DevServerSettings())


def test_https_with_missing_certificate_file(tmp_path, clean_env):
    clean_env.setenv('HTTPS', 'true')
    clean_env.setenv('SSL_CRT_FILE', str(tmp_path / 'missing.crt'))
    clean_env.setenv('SSL_KEY_FILE', str(tmp_path / 'missing.key'))

    with pytest.raises(SSLConfigError, match="can't be found"):
        build_ssl_context(DevServerSettings())


def test_https_with_invalid_certificate(tmp_path, clean_env):
    (tmp_path / 'dev.crt').write_text('not a certificate', encoding='utf-8')
    (tmp_path / 'dev.key').write_text('not a key', encoding='utf-8')
    clean_env.setenv('SSL_CRT_FILE', str(tmp_path / 'dev.crt'))
    clean_env.setenv('SSL_KEY_FILE', str(tmp_path / 'dev.key'))

    with pytest.raises(SSLConfigError, match='is invalid'):
        build_ssl_context(DevServerSettings())
