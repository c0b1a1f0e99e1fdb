"""Watch-mode compiler.

Compiler ties an AssetBundler to a FileWatcher and announces every build on
its EventChannel:

- ``invalid`` with the set of changed paths, when a rebuild starts
- ``done`` with the BuildResult, when a build finishes

Requests that need build output wait on ``wait_until_valid`` so they are
never answered from a stale or half-finished build.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Set

from .bundler import AssetBundler, BuildResult
from .events import DONE, INVALID, EventChannel
from .watcher import FileWatcher

logger = logging.getLogger(__name__)


class Compiler:

    def __init__(
        self,
        bundler: AssetBundler,
        watcher: FileWatcher,
        events: Optional[EventChannel] = None,
    ) -> None:
        self.bundler = bundler
        self.watcher = watcher
        self.events = events or EventChannel()
        self.last_result: Optional[BuildResult] = None
        self._valid = asyncio.Event()

    @property
    def is_valid(self) -> bool:
        return self._valid.is_set()

    async def wait_until_valid(self) -> BuildResult:
        await self._valid.wait()
        if self.last_result is None:
            raise RuntimeError('Compiler marked valid before any build finished')
        return self.last_result

    async def compile(self) -> BuildResult:
        """Run one build in the default executor and publish ``done``."""
        self._valid.clear()
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self.bundler.build)
        self.last_result = result
        self._valid.set()
        await self.events.emit(DONE, result)
        return result

    async def invalidate(self, changed: Set[Path]) -> None:
        self._valid.clear()
        await self.events.emit(INVALID, changed)

    async def watch(self) -> None:
        """Build once, then rebuild on every change until cancelled."""
        snapshot = await self.watcher.take_snapshot()
        await self.compile()
        async for changed in self.watcher.changes(snapshot):
            logger.debug(f"Rebuilding after changes to: {sorted(str(p) for p in changed)}")
            await self.invalidate(changed)
            await self.compile()
