"""Project metadata read from ``package.json``."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict


class AppPackage(BaseModel):
    """The parts of ``package.json`` the dev server cares about.

    ``proxy`` is kept untyped on purpose: its validation (and the error
    message for a bad value) belongs to ``devutils.proxy.prepare_proxy``.
    """

    model_config = ConfigDict(extra='ignore')

    name: str = ''
    proxy: Any = None


def read_app_package(package_json: Path) -> AppPackage:
    """Load ``package.json``; a missing file yields an empty AppPackage."""
    if not package_json.exists():
        return AppPackage()
    with package_json.open('r', encoding='utf-8') as f:
        return AppPackage.model_validate(json.load(f))
