"""Asset compiler package.

- bundler: AssetBundler and BuildResult
- watcher: polling FileWatcher
- compiler: Compiler (watch mode, build events)
- events: EventChannel and event names
- reporter: CompileReporter (console status and ``ready`` notifications)
"""
from __future__ import annotations

from .bundler import AssetBundler, BuildResult, Asset
from .compiler import Compiler
from .events import EventChannel, INVALID, DONE, READY
from .reporter import CompileReporter
from .watcher import FileWatcher

__all__ = [
    'AssetBundler',
    'BuildResult',
    'Asset',
    'Compiler',
    'EventChannel',
    'INVALID',
    'DONE',
    'READY',
    'CompileReporter',
    'FileWatcher',
]
