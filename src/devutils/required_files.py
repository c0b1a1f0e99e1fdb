"""Fail-fast check for the files the dev server cannot start without."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from rich.console import Console
from rich.markup import escape

logger = logging.getLogger(__name__)


def check_required_files(files: Iterable[Path], console: Console) -> bool:
    """Check that every required file exists.

    Every missing file is reported with its name and the directory it was
    searched in, so the user can fix them all in one go.

    Args:
        files: Required file paths, in the order they should be reported.
        console: Console the diagnostics are printed to.

    Returns:
        True when all files exist, False otherwise.
    """
    all_present = True
    for file_path in files:
        path = Path(file_path)
        if path.is_file():
            continue
        all_present = False
        logger.debug(f"Required file missing: {path}")
        console.print('[red]Could not find a required file.[/red]')
        console.print(f'[red]  Name: [/red][cyan]{escape(path.name)}[/cyan]')
        console.print(f'[red]  Searched in: [/red][cyan]{escape(str(path.parent))}[/cyan]')
    return all_present
