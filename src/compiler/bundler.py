"""In-memory asset bundler.

The bundler publishes the app's ``src/`` tree as native ES modules under
``/static/js/`` and produces the HTML entry document with the scripts the
browser needs. It performs no transpilation; each build only checks what a
browser would otherwise fail on at runtime:

- relative imports that do not resolve to a file in ``src/`` (errors)
- source files that cannot be read as UTF-8 (errors)
- leftover ``debugger`` statements (warnings)

Example:
    bundler = AssetBundler(paths, client_environment())
    result = bundler.build()
    if result.is_successful:
        print(result.assets['/static/js/bundle.js'].body)
"""
from __future__ import annotations

import hashlib
import json
import logging
import posixpath
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from config.paths import AppPaths
from devutils.mime import content_type_for

logger = logging.getLogger(__name__)

MODULE_PREFIX = '/static/js/'
BUNDLE_PATH = '/static/js/bundle.js'
ENV_SCRIPT_PATH = '/static/js/env.js'
INDEX_PATH = '/index.html'

SOURCE_SUFFIXES = ('.js', '.mjs')
RESOLVE_EXTENSIONS = ('.js', '.mjs', '.json')
IGNORED_DIRS = frozenset({'node_modules', '.git', '__pycache__'})

_IMPORT_RE = re.compile(
    r"""(?:\bimport\s*\(\s*|\bimport\s+(?:[\w$*{}\s,]+?\s+from\s+)?|\bexport\s+[\w$*{}\s,]+?\s+from\s+)"""
    r"""(['"])(\.{1,2}/[^'"]*)\1"""
)
_DEBUGGER_RE = re.compile(r'^\s*debugger\s*;?\s*(//.*)?$')
_DISABLE_NEXT_LINE = 'eslint-disable-next-line'
_PLACEHOLDER_RE = re.compile(r'%([A-Z][A-Z0-9_]*)%')
_BODY_CLOSE_RE = re.compile(r'</body\s*>', re.IGNORECASE)


@dataclass(frozen=True)
class Asset:
    body: bytes
    content_type: str


@dataclass
class BuildResult:
    """Outcome of one build.

    Attributes:
        assets: Served files keyed by URL path.
        errors: Human-readable error messages, one per problem.
        warnings: Human-readable warning messages, one per problem.
        hash: Digest of all asset contents.
        duration: Build time in seconds.
    """

    assets: Dict[str, Asset] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    hash: str = ''
    duration: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def is_successful(self) -> bool:
        return not self.errors and not self.warnings


def iter_source_files(root: Path) -> Iterable[Path]:
    """Yield files below ``root``, skipping IGNORED_DIRS, in a stable order."""
    if not root.is_dir():
        return
    for path in sorted(root.rglob('*')):
        relative = path.relative_to(root)
        if any(part in IGNORED_DIRS for part in relative.parts):
            continue
        if path.is_file():
            yield path


class AssetBundler:
    """Builds the served assets of an app from disk.

    Args:
        paths: Resolved app paths.
        client_env: Variables exposed to the browser as ``process.env`` and
            substituted for ``%NAME%`` placeholders in index.html.
        html_scripts: Extra classic scripts appended to index.html (the dev
            server's live-reload client).
    """

    def __init__(
        self,
        paths: AppPaths,
        client_env: Mapping[str, str],
        html_scripts: Sequence[str] = (),
    ) -> None:
        self.paths = paths
        self.client_env = dict(client_env)
        self.html_scripts = list(html_scripts)

    def build(self) -> BuildResult:
        started = time.monotonic()
        result = BuildResult()

        self._bundle_sources(result)
        self._bundle_entry(result)
        self._bundle_env(result)
        self._bundle_html(result)

        digest = hashlib.sha1()
        for url in sorted(result.assets):
            digest.update(url.encode('utf-8'))
            digest.update(result.assets[url].body)
        result.hash = digest.hexdigest()[:20]
        result.duration = time.monotonic() - started
        logger.debug(
            f"Built {len(result.assets)} assets in {result.duration:.3f}s "
            f"({len(result.errors)} errors, {len(result.warnings)} warnings)"
        )
        return result

    def _display_path(self, path: Path) -> str:
        try:
            return './' + path.relative_to(self.paths.app_dir).as_posix()
        except ValueError:
            return str(path)

    def _bundle_sources(self, result: BuildResult) -> None:
        src = self.paths.app_src
        aliases: List[Tuple[str, str]] = []

        for path in iter_source_files(src):
            relative = path.relative_to(src).as_posix()
            try:
                body = path.read_bytes()
            except OSError as e:
                result.errors.append(f"{self._display_path(path)}\nCould not read file: {e}")
                continue
            result.assets[MODULE_PREFIX + relative] = Asset(body, content_type_for(path.name))

            if path.suffix in SOURCE_SUFFIXES:
                try:
                    text = body.decode('utf-8')
                except UnicodeDecodeError as e:
                    result.errors.append(f"{self._display_path(path)}\nFile is not valid UTF-8: {e}")
                    continue
                aliases.extend(self._check_imports(path, relative, text, result))
                self._check_debugger(path, text, result)

        for alias, target in aliases:
            if alias not in result.assets and target in result.assets:
                result.assets[alias] = result.assets[target]

    def _check_imports(
        self,
        path: Path,
        relative: str,
        text: str,
        result: BuildResult,
    ) -> List[Tuple[str, str]]:
        """Report unresolved relative imports; return extensionless aliases."""
        aliases: List[Tuple[str, str]] = []
        directory = posixpath.dirname(relative)
        for match in _IMPORT_RE.finditer(text):
            specifier = match.group(2)
            requested = posixpath.normpath(posixpath.join(directory, specifier))
            if requested == '..' or requested.startswith('../'):
                result.errors.append(
                    f"{self._display_path(path)}\n"
                    f"Module not found: You attempted to import {specifier} which falls "
                    f"outside of the project src/ directory."
                )
                continue
            resolved = self._resolve(requested)
            if resolved is None:
                result.errors.append(
                    f"{self._display_path(path)}\n"
                    f"Module not found: Can't resolve '{specifier}' in "
                    f"'{self._display_path(path.parent)}'"
                )
            elif resolved != requested:
                aliases.append((MODULE_PREFIX + requested, MODULE_PREFIX + resolved))
        return aliases

    def _resolve(self, requested: str) -> Optional[str]:
        src = self.paths.app_src
        candidates = [requested]
        candidates += [requested + ext for ext in RESOLVE_EXTENSIONS]
        candidates += [posixpath.join(requested, 'index' + ext) for ext in RESOLVE_EXTENSIONS]
        for candidate in candidates:
            if (src / candidate).is_file():
                return candidate
        return None

    def _check_debugger(self, path: Path, text: str, result: BuildResult) -> None:
        previous = ''
        for number, line in enumerate(text.splitlines(), start=1):
            if _DEBUGGER_RE.match(line) and _DISABLE_NEXT_LINE not in previous:
                result.warnings.append(
                    f"{self._display_path(path)}\n"
                    f"  Line {number}:  Unexpected 'debugger' statement  no-debugger"
                )
            previous = line

    def _bundle_entry(self, result: BuildResult) -> None:
        entry = self.paths.app_index_js
        if not entry.is_file():
            result.errors.append(
                f"Module not found: Can't resolve '{self._display_path(entry)}' "
                f"in '{self._display_path(self.paths.app_dir)}'"
            )
            return
        relative = entry.relative_to(self.paths.app_src).as_posix()
        module = result.assets.get(MODULE_PREFIX + relative)
        if module is not None:
            result.assets[BUNDLE_PATH] = module

    def _bundle_env(self, result: BuildResult) -> None:
        env = json.dumps(self.client_env, indent=2, sort_keys=True)
        script = (
            'window.process = window.process || {};\n'
            f'window.process.env = Object.assign(window.process.env || {{}}, {env});\n'
        )
        result.assets[ENV_SCRIPT_PATH] = Asset(script.encode('utf-8'), 'application/javascript')

    def _bundle_html(self, result: BuildResult) -> None:
        html_path = self.paths.app_html
        try:
            html = html_path.read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            result.errors.append(f"{self._display_path(html_path)}\nCould not read file: {e}")
            return

        html = _PLACEHOLDER_RE.sub(
            lambda m: self.client_env.get(m.group(1), m.group(0)),
            html,
        )
        tags = [
            f'<script src="{ENV_SCRIPT_PATH}"></script>',
            f'<script type="module" src="{BUNDLE_PATH}"></script>',
        ]
        tags += [f'<script src="{script}"></script>' for script in self.html_scripts]
        injected = '\n    '.join(tags) + '\n  '

        closing = list(_BODY_CLOSE_RE.finditer(html))
        if closing:
            position = closing[-1].start()
            html = html[:position] + injected + html[position:]
        else:
            html = html + '\n' + injected
        result.assets[INDEX_PATH] = Asset(html.encode('utf-8'), 'text/html')
