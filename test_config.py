"""Tests for settings, dotenv loading and package metadata."""

import json

import pytest

from config.env import client_environment, dotenv_files, load_environment
from config.package import AppPackage, read_app_package
from config.paths import resolve_app_paths
from config.settings import DEFAULT_PORT, DevServerSettings, parse_port


@pytest.mark.parametrize('raw, expected', [
    ('4000', 4000),
    (' 4000', 4000),
    ('4000abc', 4000),
    ('abc', DEFAULT_PORT),
    ('', DEFAULT_PORT),
    (None, DEFAULT_PORT),
    ('0', DEFAULT_PORT),
    ('-1', DEFAULT_PORT),
    ('70000', DEFAULT_PORT),
    (8080, 8080),
])
def test_parse_port_follows_parse_int_with_fallback(raw, expected):
    assert parse_port(raw) == expected


def test_settings_defaults(clean_env):
    settings = DevServerSettings()

    assert settings.port == 3000
    assert settings.host == '0.0.0.0'
    assert settings.https is False
    assert settings.protocol == 'http'
    assert settings.is_unspecified_host
    assert settings.browser is None


def test_settings_read_from_environment(clean_env):
    clean_env.setenv('PORT', '4000')
    clean_env.setenv('HOST', '127.0.0.1')
    clean_env.setenv('HTTPS', 'true')
    clean_env.setenv('BROWSER', 'none')

    settings = DevServerSettings()

    assert settings.port == 4000
    assert settings.host == '127.0.0.1'
    assert settings.protocol == 'https'
    assert not settings.is_unspecified_host
    assert settings.browser == 'none'


@pytest.mark.parametrize('value', ['TRUE', '1', 'yes', 'false', ''])
def test_https_requires_literal_true(clean_env, value):
    clean_env.setenv('HTTPS', value)

    assert DevServerSettings().protocol == 'http'


def test_non_numeric_port_falls_back(clean_env):
    clean_env.setenv('PORT', 'not-a-port')

    assert DevServerSettings().port == 3000


def test_empty_host_falls_back(clean_env):
    clean_env.setenv('HOST', '')

    assert DevServerSettings().host == '0.0.0.0'


def test_dotenv_cascade_order(tmp_path):
    files = dotenv_files(tmp_path / '.env')

    assert [f.name for f in files] == [
        '.env.development.local',
        '.env.development',
        '.env.local',
        '.env',
    ]


def test_load_environment_forces_development_and_keeps_existing(tmp_path):
    (tmp_path / '.env').write_text('PORT=4000\nAPP_TITLE=base\nAPP_ONLY_BASE=1\n', encoding='utf-8')
    (tmp_path / '.env.local').write_text('APP_TITLE=local\n', encoding='utf-8')
    environ = {'PORT': '5000', 'NODE_ENV': 'production'}

    loaded = load_environment(resolve_app_paths(tmp_path), environ)

    assert [f.name for f in loaded] == ['.env.local', '.env']
    assert environ['NODE_ENV'] == 'development'
    assert environ['PORT'] == '5000'
    assert environ['APP_TITLE'] == 'local'
    assert environ['APP_ONLY_BASE'] == '1'


def test_load_environment_without_dotenv_files(tmp_path):
    environ = {}

    assert load_environment(resolve_app_paths(tmp_path), environ) == []
    assert environ == {'NODE_ENV': 'development'}


def test_client_environment_only_exposes_app_variables():
    env = client_environment({'APP_API': '/api', 'SECRET_TOKEN': 'x', 'NODE_ENV': 'development'})

    assert env == {'APP_API': '/api', 'NODE_ENV': 'development', 'PUBLIC_URL': ''}


def test_read_app_package(tmp_path):
    package_json = tmp_path / 'package.json'
    package_json.write_text(
        json.dumps({'name': 'my-app', 'proxy': 'http://localhost:4000', 'private': True}),
        encoding='utf-8',
    )

    app_package = read_app_package(package_json)

    assert app_package.name == 'my-app'
    assert app_package.proxy == 'http://localhost:4000'


def test_read_app_package_missing_file(tmp_path):
    assert read_app_package(tmp_path / 'package.json') == AppPackage()


def test_app_paths_layout(tmp_path):
    paths = resolve_app_paths(tmp_path)

    assert paths.required_files == [
        tmp_path.resolve() / 'public' / 'index.html',
        tmp_path.resolve() / 'src' / 'index.js',
    ]
    assert not paths.use_yarn
    (tmp_path / 'yarn.lock').write_text('', encoding='utf-8')
    assert paths.use_yarn
