"""
Output renderers for reported messages.

A renderer turns one (level, message) pair into output. The Reporter
decides what gets rendered; renderers only format.

Formats:
    text  - level prefix, continuation lines indented, colored on a terminal
    json  - one JSON array streamed as messages arrive
    yaml  - one `---` separated document per message
"""

import json
import sys
from typing import List, Optional, TextIO, Tuple

import yaml
from rich.console import Console

from .console import get_console
from .models import Level

# Continuation lines line up under the text after the prefix
TEXT_INDENT = " " * len(Level.ERROR.prefix)


class Renderer:
    """Base renderer interface."""

    def write(self, level: Level, message: str) -> None:
        raise NotImplementedError

    def finish(self) -> None:
        """Close any open output structure."""


class TextRenderer(Renderer):
    """Human-readable output through the shared Rich console."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_console()

    def write(self, level: Level, message: str) -> None:
        text = level.prefix + message.replace("\n", "\n" + TEXT_INDENT)
        self.console.print(text, style=level.style)


class JsonRenderer(Renderer):
    """Streams a JSON array of {"message", "level"} objects."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout
        self._started = False
        self._finished = False

    def write(self, level: Level, message: str) -> None:
        self.stream.write(",\n" if self._started else "[\n")
        self._started = True
        entry = json.dumps({"message": message, "level": level.label}, indent=2)
        self.stream.write("  " + entry.replace("\n", "\n  "))
        self.stream.flush()

    def finish(self) -> None:
        if self._finished:
            return
        if self._started:
            self.stream.write("\n]\n")
        else:
            self.stream.write("[]\n")
        self._finished = True
        self.stream.flush()


class YamlRenderer(Renderer):
    """Writes each message as its own YAML document."""

    def __init__(self, stream: Optional[TextIO] = None):
        self.stream = stream or sys.stdout

    def write(self, level: Level, message: str) -> None:
        document = yaml.safe_dump(
            {"message": message, "level": level.label},
            default_flow_style=False,
            sort_keys=False,
        )
        self.stream.write("---\n" + document)
        self.stream.flush()


class CollectingRenderer(Renderer):
    """Keeps rendered messages in memory, for embedding the engine in other tools."""

    def __init__(self):
        self.messages: List[Tuple[Level, str]] = []
        self.finished = False

    def write(self, level: Level, message: str) -> None:
        self.messages.append((level, message))

    def finish(self) -> None:
        self.finished = True

    def at(self, level: Level) -> List[str]:
        """Messages written at exactly this level."""
        return [msg for lvl, msg in self.messages if lvl is level]


RENDERERS = {
    "text": TextRenderer,
    "json": JsonRenderer,
    "yaml": YamlRenderer,
}


def get_renderer(name: str) -> Renderer:
    """
    Build a renderer by format name.

    Raises:
        ValueError: if the format is not one of RENDERERS
    """
    try:
        return RENDERERS[name.lower()]()
    except KeyError:
        raise ValueError(f"Unknown output format '{name}'; expected one of: "
                         f"{', '.join(sorted(RENDERERS))}") from None
