"""Console output helpers.

All user-facing status lines go through a rich Console so that colour is
applied only when the terminal supports it.
"""
from __future__ import annotations

import sys
from typing import IO, Optional

from rich.console import Console

# Clear the screen and the scrollback, then move the cursor home.
_CLEAR_SEQUENCE = '\x1b[2J\x1b[3J\x1b[H'
_CLEAR_SEQUENCE_WIN32 = '\x1bc'


def make_console(file: Optional[IO[str]] = None) -> Console:
    return Console(file=file, highlight=False, soft_wrap=True)


def clear_console(console: Console) -> None:
    """Clear the terminal, scrollback included."""
    sequence = _CLEAR_SEQUENCE_WIN32 if sys.platform == 'win32' else _CLEAR_SEQUENCE
    console.file.write(sequence)
    console.file.flush()
