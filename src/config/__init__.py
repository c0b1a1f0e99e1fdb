"""Configuration package for the development server.

This package turns the process environment and the front-end project on disk
into explicit values that the rest of the launcher receives as arguments:

- env: dotenv cascade loading and browser-visible variables
- settings: DevServerSettings (pydantic-settings)
- paths: AppPaths for the project layout
- package: AppPackage metadata read from package.json
"""
from __future__ import annotations

from .env import load_environment, client_environment
from .settings import DevServerSettings
from .paths import AppPaths, resolve_app_paths
from .package import AppPackage, read_app_package

__all__ = [
    'load_environment',
    'client_environment',
    'DevServerSettings',
    'AppPaths',
    'resolve_app_paths',
    'AppPackage',
    'read_app_package',
]
