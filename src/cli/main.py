"""Command-line entry point that starts the development server.

This module implements the startup flow:

    environment -> required files -> port detection -> (prompt) -> launch

Configuration is loaded once into a LaunchContext and passed explicitly to
every step. Port detection runs in one event loop and the server in a second
one; the optional prompt runs on the main thread in between, so Ctrl+C stops
it immediately. The server is launched only on the default port when it is
free, or on the detected alternative after the user agreed to it.

Example:
    Start the app in the current directory::

        $ devstart

    Start another app with debug logging::

        $ devstart ../my-app --verbose

Note:
    Exceptions nobody handles, whether raised by a startup step or by a
    background task once the server runs, crash the process with a traceback.
    Carrying on after such an error would leave the server in an unknown state.
"""
from __future__ import annotations

import argparse
import asyncio
import logging
import os
import signal
import sys
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from rich.console import Console
from rich.markup import escape

from compiler.bundler import AssetBundler
from compiler.compiler import Compiler
from compiler.reporter import CompileReporter
from compiler.watcher import FileWatcher
from config.env import NODE_ENV, client_environment, load_environment
from config.package import read_app_package
from config.paths import AppPaths, resolve_app_paths
from config.settings import DevServerSettings
from devutils.browser import open_browser
from devutils.console import clear_console, make_console
from devutils.errors import ProxyConfigError, SSLConfigError
from devutils.ports import detect_port, get_process_for_port
from devutils.prompt import confirm_port_change
from devutils.proxy import prepare_proxy
from devutils.required_files import check_required_files
from devutils.urls import Urls, prepare_urls
from webapp.config import create_dev_server_config
from webapp.handlers.livereload import CLIENT_SCRIPT_PATH
from webapp.server import DevServer

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LaunchContext:
    """Values loaded once at startup and shared by every step.

    Attributes:
        settings: Environment-driven settings.
        paths: App layout on disk.
        console: Console for user-facing output.
        interactive: Whether stdout was a terminal at startup.
    """

    settings: DevServerSettings
    paths: AppPaths
    console: Console
    interactive: bool


class PortState(Enum):
    DEFAULT_FREE = 'default-free'
    BUSY_INTERACTIVE = 'busy-interactive'
    BUSY_NONINTERACTIVE = 'busy-noninteractive'


def resolve_port_state(default_port: int, detected_port: int, interactive: bool) -> PortState:
    if detected_port == default_port:
        return PortState.DEFAULT_FREE
    if interactive:
        return PortState.BUSY_INTERACTIVE
    return PortState.BUSY_NONINTERACTIVE


def print_instructions(console: Console, app_name: str, urls: Urls, use_yarn: bool) -> None:
    """Print where the app can be viewed and how to build for production."""
    console.print()
    console.print(f'You can now view [bold]{escape(app_name)}[/bold] in the browser.')
    console.print()

    if urls.lan_url:
        console.print(f'  [bold]Local:[/bold]            [cyan]{urls.local_url}[/cyan]')
        console.print(f'  [bold]On Your Network:[/bold]  [cyan]{urls.lan_url}[/cyan]')
    else:
        console.print(f'  [cyan]{urls.local_url}[/cyan]')

    cli = 'yarn' if use_yarn else 'npm'
    console.print()
    console.print('Note that the development build is not optimized.')
    console.print(f'To create a production build, use [cyan]{cli} run build[/cyan].')
    console.print()


async def launch(context: LaunchContext, port: int) -> Optional[DevServer]:
    """Build the compiler and dev server and bind ``port``.

    Returns:
        The listening DevServer, or None if binding failed (the error is
        printed and logged).

    Raises:
        ProxyConfigError: If package.json declares an invalid proxy.
        SSLConfigError: If the configured certificate files are missing or invalid.
    """
    settings, paths, console = context.settings, context.paths, context.console
    urls = prepare_urls(settings.protocol, settings.host, port)
    app_package = read_app_package(paths.app_package_json)
    app_name = app_package.name or paths.app_dir.name

    proxy = prepare_proxy(app_package.proxy, paths.app_public)
    config = create_dev_server_config(settings, paths, proxy, urls.lan_address)

    bundler = AssetBundler(paths, client_environment(), html_scripts=[CLIENT_SCRIPT_PATH])
    compiler = Compiler(bundler, FileWatcher([paths.app_src, paths.app_public]))
    reporter = CompileReporter(compiler.events, console, context.interactive)

    def on_ready(show_instructions: bool) -> None:
        if show_instructions:
            print_instructions(console, app_name, urls, paths.use_yarn)

    reporter.on_ready(on_ready)

    server = DevServer(compiler, config, console)
    try:
        await server.listen(port, settings.host)
    except OSError as e:
        logger.error(f"Could not bind {settings.host}:{port}: {e}")
        console.print(f'[red]{escape(str(e))}[/red]')
        return None

    if context.interactive:
        clear_console(console)
    console.print('[cyan]Starting the development server...[/cyan]')
    console.print()

    await asyncio.get_running_loop().run_in_executor(
        None, open_browser, urls.local_url, settings.browser,
    )
    return server


async def serve(server: DevServer) -> None:
    """Keep serving until SIGTERM/SIGINT, failing loudly on unhandled errors.

    Any exception that reaches the event loop's exception handler (for
    example from a task nobody awaits) stops serving and is re-raised here.
    """
    loop = asyncio.get_running_loop()
    crashed: asyncio.Future = loop.create_future()

    def crash_on_unhandled_error(loop: asyncio.AbstractEventLoop, context: dict) -> None:
        error = context.get('exception') or RuntimeError(context.get('message', 'Unhandled error'))
        logger.critical(f"Unhandled error: {context.get('message', error)}")
        if not crashed.done():
            crashed.set_exception(error)

    loop.set_exception_handler(crash_on_unhandled_error)
    try:
        loop.add_signal_handler(signal.SIGTERM, server.request_close)
    except (NotImplementedError, RuntimeError):
        # No signal handlers on Windows event loops.
        pass

    closed = asyncio.ensure_future(server.wait_closed())
    try:
        done, _ = await asyncio.wait({crashed, closed}, return_when=asyncio.FIRST_COMPLETED)
        for future in done:
            future.result()
    finally:
        closed.cancel()
        await server.close()


async def detect_port_state(context: LaunchContext) -> Tuple[int, PortState]:
    default_port = context.settings.port
    port = await detect_port(default_port, context.settings.host)
    state = resolve_port_state(default_port, port, context.interactive)
    logger.debug(f"Port {default_port} resolved to {port} ({state.value})")
    return port, state


def choose_port(context: LaunchContext, port: int, state: PortState) -> Optional[int]:
    """Return the port to launch on, or None to stop without launching.

    Runs between event loops, so an interrupted prompt raises
    KeyboardInterrupt right away.
    """
    console = context.console
    default_port = context.settings.port

    if state is PortState.BUSY_NONINTERACTIVE:
        console.print(f'[red]Something is already running on port {default_port}.[/red]')
        return None

    if state is PortState.BUSY_INTERACTIVE:
        clear_console(console)
        existing_process = get_process_for_port(default_port)
        if not confirm_port_change(console, default_port, existing_process):
            return None

    return port


async def launch_and_serve(context: LaunchContext, port: int) -> None:
    server = await launch(context, port)
    if server is not None:
        await serve(server)


def start(context: LaunchContext) -> None:
    """Resolve the port, ask if needed, then launch and serve."""
    port, state = asyncio.run(detect_port_state(context))
    port = choose_port(context, port, state)
    if port is not None:
        asyncio.run(launch_and_serve(context, port))


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Start the development server for a front-end app.',
        epilog='Use Ctrl+C to stop the server',
    )
    parser.add_argument(
        'app_dir',
        nargs='?',
        default=None,
        help='App directory containing package.json (default: current directory)',
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable debug logging',
    )
    return parser.parse_args(argv)


def run(argv: Optional[List[str]] = None) -> None:
    """Console script entry point.

    Exits with status 1 when a required file is missing or the proxy/HTTPS
    configuration is unusable. Every other way of stopping (declined prompt,
    busy port without a terminal, bind failure, Ctrl+C) exits normally.
    """
    os.environ['NODE_ENV'] = NODE_ENV

    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='[%(levelname)s] %(name)s: %(message)s',
    )

    paths = resolve_app_paths(args.app_dir)
    loaded = load_environment(paths)
    logger.debug(f"Loaded dotenv files: {[str(p) for p in loaded]}")

    settings = DevServerSettings()
    console = make_console()
    context = LaunchContext(
        settings=settings,
        paths=paths,
        console=console,
        interactive=sys.stdout.isatty(),
    )

    if not check_required_files(paths.required_files, console):
        sys.exit(1)

    try:
        start(context)
    except (ProxyConfigError, SSLConfigError) as e:
        console.print(f'[red]{escape(str(e))}[/red]')
        sys.exit(1)
    except KeyboardInterrupt:
        console.print()
        sys.exit(0)


if __name__ == '__main__':
    run()
