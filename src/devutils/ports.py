"""Port availability detection.

This module provides the asynchronous free-port check used before the dev
server binds, and a best-effort lookup of the process that already holds a
port, used only for the interactive "port busy" prompt.

Example:
    port = await detect_port(3000, '0.0.0.0')
    if port != 3000:
        print(get_process_for_port(3000))
"""
from __future__ import annotations

import asyncio
import errno
import logging
import subprocess
from typing import Optional

from rich.markup import escape

from .errors import PortDetectionError

logger = logging.getLogger(__name__)

MAX_PORT = 65535

# Bind failures that mean "taken, try the next one".
_BUSY_ERRNOS = (errno.EADDRINUSE, errno.EACCES)


async def detect_port(port: int, host: str = '0.0.0.0') -> int:
    """Find the first port at or above ``port`` that can be bound on ``host``.

    Each candidate is checked by starting (and immediately closing) a
    listening server on the running event loop.

    Args:
        port: Desired port.
        host: Address the dev server will bind to.

    Returns:
        ``port`` itself when it is free, otherwise the next free port.

    Raises:
        PortDetectionError: If probing fails for a reason other than the
            port being taken, or no port up to 65535 is free.
    """
    loop = asyncio.get_running_loop()
    candidate = port
    while candidate <= MAX_PORT:
        try:
            server = await loop.create_server(asyncio.Protocol, host=host, port=candidate)
        except OSError as e:
            if e.errno not in _BUSY_ERRNOS:
                raise PortDetectionError(
                    f"Could not check port {candidate} on {host}: {e}"
                ) from e
            logger.debug(f"Port {candidate} on {host} is busy")
            candidate += 1
            continue
        server.close()
        await server.wait_closed()
        return candidate
    raise PortDetectionError(f"No free port found on {host} between {port} and {MAX_PORT}")


def _run(args: list[str]) -> str:
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        timeout=5,
        check=True,
    )
    return result.stdout


def _process_id_for_port(port: int) -> str:
    return _run(['lsof', f'-i:{port}', '-P', '-t', '-sTCP:LISTEN']).split('\n')[0].strip()


def _process_command(process_id: str) -> str:
    lines = _run(['ps', '-o', 'command', '-p', process_id]).strip().split('\n')
    # First line is the column header.
    return lines[-1].strip()


def _process_directory(process_id: str) -> str:
    for line in _run(['lsof', '-p', process_id]).split('\n'):
        columns = line.split()
        if len(columns) >= 9 and columns[3] == 'cwd':
            return ' '.join(columns[8:])
    return ''


def get_process_for_port(port: int) -> Optional[str]:
    """Describe the process listening on ``port``, for display only.

    Uses ``lsof`` and ``ps``; returns None when they are unavailable or
    nothing useful is found.

    Returns:
        Rich markup such as ``node server.js (pid 42)\\n  in /srv/app``.
    """
    try:
        process_id = _process_id_for_port(port)
        if not process_id:
            return None
        command = _process_command(process_id)
        directory = _process_directory(process_id)
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug(f"Could not identify process on port {port}: {e}")
        return None

    description = f'[cyan]{escape(command)}[/cyan][grey50] (pid {escape(process_id)})[/grey50]'
    if directory:
        description += f'\n[blue]  in [/blue][cyan]{escape(directory)}[/cyan]'
    return description
