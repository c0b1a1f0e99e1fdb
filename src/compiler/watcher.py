"""Polling file watcher.

Snapshots the modification time and size of every file below the watched
roots and reports the set of paths that changed between two polls.
"""
from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator, Dict, Iterable, Optional, Set, Tuple

from .bundler import iter_source_files

logger = logging.getLogger(__name__)

Snapshot = Dict[Path, Tuple[int, int]]


class FileWatcher:
    """Watches directory trees by polling.

    Args:
        roots: Directories to watch; missing ones are skipped.
        interval: Seconds between polls.
    """

    def __init__(self, roots: Iterable[Path], interval: float = 0.25) -> None:
        self.roots = list(roots)
        self.interval = interval

    def snapshot(self) -> Snapshot:
        state: Snapshot = {}
        for root in self.roots:
            for path in iter_source_files(root):
                try:
                    stat = path.stat()
                except FileNotFoundError:
                    # Deleted between listing and stat.
                    continue
                state[path] = (stat.st_mtime_ns, stat.st_size)
        return state

    async def take_snapshot(self) -> Snapshot:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self.snapshot)

    async def changes(self, previous: Optional[Snapshot] = None) -> AsyncIterator[Set[Path]]:
        """Yield sets of changed (added, modified or removed) paths forever."""
        if previous is None:
            previous = await self.take_snapshot()
        while True:
            await asyncio.sleep(self.interval)
            current = await self.take_snapshot()
            changed = {
                path for path in current.keys() | previous.keys()
                if current.get(path) != previous.get(path)
            }
            previous = current
            if changed:
                logger.debug(f"Detected {len(changed)} changed file(s)")
                yield changed
