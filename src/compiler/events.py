"""Named event channel connecting the compiler to its listeners."""
from __future__ import annotations

import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, DefaultDict, List, Optional, Union

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Union[None, Awaitable[None]]]

# Emitted when a source change makes the current build stale.
INVALID = 'invalid'
# Emitted with a BuildResult after every build.
DONE = 'done'
# Emitted by CompileReporter with the show_instructions flag.
READY = 'ready'


class EventChannel:
    """Publish/subscribe by event name.

    Handlers may be plain functions or coroutine functions; ``emit`` awaits
    coroutine handlers in subscription order. A handler that raises aborts
    the emit and the exception propagates to the emitter.
    """

    def __init__(self) -> None:
        self._handlers: DefaultDict[str, List[Handler]] = defaultdict(list)

    def subscribe(self, event: str, handler: Handler) -> Callable[[], None]:
        """Register ``handler`` for ``event``; returns an unsubscribe callable."""
        self._handlers[event].append(handler)

        def unsubscribe() -> None:
            if handler in self._handlers[event]:
                self._handlers[event].remove(handler)

        return unsubscribe

    async def emit(self, event: str, payload: Optional[Any] = None) -> None:
        handlers = list(self._handlers[event])
        logger.debug(f"Emitting '{event}' to {len(handlers)} handler(s)")
        for handler in handlers:
            result = handler(payload)
            if inspect.isawaitable(result):
                await result
