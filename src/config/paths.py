"""Filesystem layout of the front-end project being served."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union


@dataclass(frozen=True)
class AppPaths:
    """Resolved locations inside the app directory.

    Attributes:
        app_dir: Root of the front-end project.
        app_public: Content base served as-is (``public/``).
        app_html: HTML entry document (``public/index.html``).
        app_src: Source tree compiled by the bundler (``src/``).
        app_index_js: JavaScript entry module (``src/index.js``).
        app_package_json: Project metadata (``package.json``).
        yarn_lock_file: Presence selects ``yarn`` in printed hints.
        dotenv: Base dotenv file; mode-specific variants sit next to it.
    """

    app_dir: Path
    app_public: Path
    app_html: Path
    app_src: Path
    app_index_js: Path
    app_package_json: Path
    yarn_lock_file: Path
    dotenv: Path

    @property
    def required_files(self) -> list[Path]:
        return [self.app_html, self.app_index_js]

    @property
    def use_yarn(self) -> bool:
        return self.yarn_lock_file.exists()


def resolve_app_paths(app_dir: Optional[Union[str, Path]] = None) -> AppPaths:
    """Build AppPaths for ``app_dir`` (defaults to the working directory)."""
    root = Path(app_dir or Path.cwd()).resolve()
    return AppPaths(
        app_dir=root,
        app_public=root / 'public',
        app_html=root / 'public' / 'index.html',
        app_src=root / 'src',
        app_index_js=root / 'src' / 'index.js',
        app_package_json=root / 'package.json',
        yarn_lock_file=root / 'yarn.lock',
        dotenv=root / '.env',
    )
