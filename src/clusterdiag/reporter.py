"""
Reporter: the single sink for every message diagnostics produce.

One Reporter is created per run and passed by reference to discovery,
the registry runner, and every diagnostic. It counts warnings and
errors whether or not they pass the display threshold, and hands
admitted messages to a renderer.
"""

import logging
import threading
from typing import Optional

from .models import Level
from .render import Renderer, TextRenderer

logger = logging.getLogger(__name__)


class Reporter:
    """
    Leveled message sink with warning/error counters.

    Attributes:
        threshold: Highest rank displayed (Level.INFO by default)
        error_count: ERROR messages seen so far
        warning_count: WARN messages seen so far
    """

    def __init__(self, renderer: Optional[Renderer] = None, threshold: Level = Level.INFO):
        self.renderer = renderer or TextRenderer()
        self.threshold = threshold
        self.error_count = 0
        self.warning_count = 0
        self._lock = threading.Lock()

    def emit(self, level: Level, message: str) -> None:
        """Count the message, then render it if the threshold admits it."""
        with self._lock:
            if level is Level.ERROR:
                self.error_count += 1
            elif level is Level.WARN:
                self.warning_count += 1
            if level.admits(self.threshold):
                self.renderer.write(level, message)

    def error(self, message: str) -> None:
        self.emit(Level.ERROR, message)

    def warn(self, message: str) -> None:
        self.emit(Level.WARN, message)

    def notice(self, message: str) -> None:
        self.emit(Level.NOTICE, message)

    def info(self, message: str) -> None:
        self.emit(Level.INFO, message)

    def debug(self, message: str) -> None:
        self.emit(Level.DEBUG, message)

    def summary(self) -> None:
        """Emit the end-of-run counts of warnings and errors."""
        with self._lock:
            errors, warnings = self.error_count, self.warning_count
        if errors == 0 and warnings == 0:
            self.notice("Completed with no errors or warnings seen.")
        else:
            self.notice(f"Errors seen: {errors}\nWarnings seen: {warnings}")
        logger.debug(f"Run summary: {errors} error(s), {warnings} warning(s)")

    def finish(self) -> None:
        """Let the renderer close its output."""
        self.renderer.finish()
