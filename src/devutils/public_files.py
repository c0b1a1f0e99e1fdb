"""Lookup of files in the app's public directory."""
from __future__ import annotations

import pathlib
from typing import Optional


def resolve_public_file(public_dir: pathlib.Path, path: str) -> Optional[pathlib.Path]:
    """Map a URL path onto a file inside ``public_dir``.

    Returns None for directories, missing files, and paths escaping the
    public directory.
    """
    relative = path.lstrip('/')
    if not relative:
        return None
    root = public_dir.resolve()
    candidate = (root / relative).resolve()
    if root not in candidate.parents or not candidate.is_file():
        return None
    return candidate
