"""Interactive questions asked during startup."""
from __future__ import annotations

from typing import Optional

from rich.console import Console
from rich.prompt import Confirm


def port_change_question(default_port: int, existing_process: Optional[str]) -> str:
    question = f'[yellow]Something is already running on port {default_port}.'
    if existing_process:
        question += f' Probably:\n  {existing_process}'
    question += '[/yellow]\n\nWould you like to run the app on another port instead?'
    return question


def confirm_port_change(
    console: Console,
    default_port: int,
    existing_process: Optional[str] = None,
) -> bool:
    """Ask whether to start on another port, defaulting to yes.

    Must be called on the main thread with no event loop running, so that
    Ctrl+C interrupts the terminal read and stops the process.
    """
    question = port_change_question(default_port, existing_process)
    return Confirm.ask(question, console=console, default=True)
