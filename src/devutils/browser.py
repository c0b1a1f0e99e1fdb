"""Opening the app in a browser."""
from __future__ import annotations

import logging
import webbrowser
from typing import Optional

logger = logging.getLogger(__name__)


def open_browser(url: str, browser: Optional[str] = None) -> bool:
    """Open ``url`` in a browser tab.

    Args:
        url: URL to open.
        browser: Name of a ``webbrowser`` controller (``BROWSER``). ``none``
            disables opening; None uses the system default.

    Returns:
        True if a browser was launched.
    """
    if browser and browser.lower() == 'none':
        return False
    try:
        controller = webbrowser.get(browser) if browser else webbrowser.get()
        return controller.open_new_tab(url)
    except webbrowser.Error as e:
        logger.debug(f"Could not open browser for {url}: {e}")
        return False
