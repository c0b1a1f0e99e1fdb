"""Human-readable compile status.

CompileReporter listens to a compiler's events and prints what happened to
each build. After every build it publishes ``ready`` with a flag telling
listeners whether the "You can now view..." instructions should be shown:
only for successful builds, and after the first one only when the console
was cleared (interactive sessions), so non-interactive logs are not flooded
with repeated instructions.

Example:
    reporter = CompileReporter(compiler.events, console, interactive=True)
    reporter.on_ready(lambda show: show and print_instructions())
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Set

from rich.console import Console
from rich.markup import escape

from devutils.console import clear_console

from .bundler import BuildResult
from .events import DONE, INVALID, READY, EventChannel, Handler

logger = logging.getLogger(__name__)


class CompileReporter:

    def __init__(self, events: EventChannel, console: Console, interactive: bool) -> None:
        self.events = events
        self.console = console
        self.interactive = interactive
        self.is_first_compile = True
        events.subscribe(INVALID, self._on_invalid)
        events.subscribe(DONE, self._on_done)

    def on_ready(self, handler: Handler) -> Callable[[], None]:
        """Subscribe to ``ready``; the handler receives ``show_instructions``."""
        return self.events.subscribe(READY, handler)

    def _on_invalid(self, changed: Set[Path]) -> None:
        if self.interactive:
            clear_console(self.console)
        self.console.print('Compiling...')

    async def _on_done(self, result: BuildResult) -> None:
        if self.interactive:
            clear_console(self.console)

        show_instructions = result.is_successful and (self.interactive or self.is_first_compile)
        if result.is_successful:
            self.console.print('[green]Compiled successfully![/green]')

        await self.events.emit(READY, show_instructions)
        self.is_first_compile = False

        if result.has_errors:
            logger.debug(f"Build failed with {len(result.errors)} error(s)")
            self.console.print('[red]Failed to compile.[/red]')
            self.console.print()
            self.console.print(escape('\n\n'.join(result.errors)))
            return

        if result.has_warnings:
            self.console.print('[yellow]Compiled with warnings.[/yellow]')
            self.console.print()
            self.console.print(escape('\n\n'.join(result.warnings)))
            self.console.print()
            self.console.print(
                'Search for the [underline yellow]keywords[/underline yellow] '
                'to learn more about each warning.'
            )
            self.console.print(
                'To ignore, add [cyan]// eslint-disable-next-line[/cyan] to the line before.'
            )
            self.console.print()
