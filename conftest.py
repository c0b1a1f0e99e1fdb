"""Shared fixtures: a small front-end app on disk and a captured console."""

import io
import json

import pytest
from rich.console import Console

from config.paths import resolve_app_paths

INDEX_HTML = """<!doctype html>
<html>
  <head>
    <title>%APP_TITLE%</title>
    <link rel="icon" href="%PUBLIC_URL%/favicon.ico">
  </head>
  <body>
    <div id="root"></div>
  </body>
</html>
"""

INDEX_JS = """import App from './App';
import { format } from './utils/format.js';

document.getElementById('root').textContent = format(App());
"""

APP_JS = """export default function App() {
  return 'Hello';
}
"""

FORMAT_JS = """export function format(text) {
  return text + '!';
}
"""


@pytest.fixture
def app_dir(tmp_path):
    """A complete app: package.json, public/ and src/."""
    (tmp_path / 'package.json').write_text(
        json.dumps({'name': 'my-app', 'version': '0.1.0'}), encoding='utf-8'
    )
    public = tmp_path / 'public'
    public.mkdir()
    (public / 'index.html').write_text(INDEX_HTML, encoding='utf-8')
    (public / 'favicon.ico').write_bytes(b'\x00\x00\x01\x00')
    src = tmp_path / 'src'
    (src / 'utils').mkdir(parents=True)
    (src / 'index.js').write_text(INDEX_JS, encoding='utf-8')
    (src / 'App.js').write_text(APP_JS, encoding='utf-8')
    (src / 'utils' / 'format.js').write_text(FORMAT_JS, encoding='utf-8')
    return tmp_path


@pytest.fixture
def app_paths(app_dir):
    return resolve_app_paths(app_dir)


@pytest.fixture
def output():
    return io.StringIO()


@pytest.fixture
def console(output):
    return Console(file=output, highlight=False, soft_wrap=True, force_terminal=False, color_system=None)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every variable DevServerSettings reads.

    Setting before deleting makes monkeypatch restore the variables even when
    code under test writes them to os.environ.
    """
    for name in (
        'PORT',
        'HOST',
        'HTTPS',
        'BROWSER',
        'SSL_CRT_FILE',
        'SSL_KEY_FILE',
        'DANGEROUSLY_DISABLE_HOST_CHECK',
        'NODE_ENV',
        'FORCE_COLOR',
    ):
        monkeypatch.setenv(name, '')
        monkeypatch.delenv(name)
    return monkeypatch
