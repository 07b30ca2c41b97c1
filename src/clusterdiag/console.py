"""
clusterdiag Console Manager

Provides a singleton Rich Console instance for the text renderer, so every
message shares one theme and one terminal-detection decision. Rich leaves
out color sequences when stdout is redirected to a file or pager.

Usage:
    from clusterdiag.console import get_console
    get_console().print("Checking units", style="info")
"""

from rich.console import Console
from rich.theme import Theme
from typing import Optional
import threading

# Thread-safe singleton
_console: Optional[Console] = None
_lock = threading.Lock()

# One style per report level
CLUSTERDIAG_THEME = Theme({
    "error": "red bold",
    "warning": "yellow bold",
    "notice": "white bold",
    "info": "default",
    "debug": "dim cyan",
})


def get_console(force_terminal: bool = None,
                no_color: bool = None,
                width: int = None) -> Console:
    """
    Get the singleton Console instance.

    Args:
        force_terminal: Force terminal mode (for testing)
        no_color: Disable color output
        width: Override console width

    Returns:
        The shared Console instance
    """
    global _console

    if _console is None:
        with _lock:
            # Double-check locking
            if _console is None:
                _console = Console(
                    theme=CLUSTERDIAG_THEME,
                    force_terminal=force_terminal,
                    no_color=no_color,
                    width=width,
                    highlight=False,
                    markup=False,
                    soft_wrap=True,
                )

    return _console


def reset_console():
    """
    Reset the console singleton (useful for testing).
    """
    global _console
    with _lock:
        _console = None
