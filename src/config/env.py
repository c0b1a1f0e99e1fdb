"""Environment loading.

The launcher forces ``NODE_ENV=development`` before anything else reads the
environment, then loads the dotenv cascade of the app directory. Files are
loaded highest priority first and never override a variable that is already
set, so the real process environment always wins.

Example:
    paths = resolve_app_paths('.')
    loaded = load_environment(paths)
    settings = DevServerSettings()
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Dict, List, Mapping, MutableMapping, Optional

from dotenv import dotenv_values

from .paths import AppPaths

logger = logging.getLogger(__name__)

NODE_ENV = 'development'
CLIENT_ENV_PREFIX = 'APP_'


def dotenv_files(dotenv: Path, node_env: str = NODE_ENV) -> List[Path]:
    """Return the dotenv cascade for ``node_env``, highest priority first."""
    return [
        dotenv.with_name(f'{dotenv.name}.{node_env}.local'),
        dotenv.with_name(f'{dotenv.name}.{node_env}'),
        dotenv.with_name(f'{dotenv.name}.local'),
        dotenv,
    ]


def load_environment(
    paths: AppPaths,
    environ: Optional[MutableMapping[str, str]] = None,
) -> List[Path]:
    """Force development mode and load the dotenv cascade into the environment.

    Args:
        paths: Resolved app paths; dotenv files are looked up next to
            ``paths.dotenv``.
        environ: Environment mapping to update. Defaults to ``os.environ``.

    Returns:
        The dotenv files that existed and were loaded, in load order.
    """
    environ = os.environ if environ is None else environ
    environ['NODE_ENV'] = NODE_ENV

    loaded: List[Path] = []
    for dotenv_file in dotenv_files(paths.dotenv):
        if not dotenv_file.is_file():
            continue
        logger.debug(f"Loading environment from {dotenv_file}")
        for key, value in dotenv_values(dotenv_file).items():
            if value is not None and key not in environ:
                environ[key] = value
        loaded.append(dotenv_file)
    return loaded


def client_environment(environ: Optional[Mapping[str, str]] = None) -> Dict[str, str]:
    """Variables exposed to browser code as ``process.env``.

    Only ``APP_*`` variables are exposed, plus ``NODE_ENV`` and an empty
    ``PUBLIC_URL`` (the dev server always serves from the root).
    """
    environ = os.environ if environ is None else environ
    values = {
        key: value
        for key, value in sorted(environ.items())
        if key.startswith(CLIENT_ENV_PREFIX)
    }
    values['NODE_ENV'] = environ.get('NODE_ENV', NODE_ENV)
    values['PUBLIC_URL'] = ''
    return values
