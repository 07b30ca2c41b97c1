"""
Log Pattern Matcher

Scans one unit's journal since its most recent start for known problem
messages and reports an interpretation for each one found.

How a scan works:
    1. Entries arrive newest first.
    2. An entry matching the unit's start boundary ends the scan; anything
       older belongs to a previous run of the service.
    3. Every other entry is tested against the still-active matchers in
       declaration order. The first matcher that matches handles it.
    4. A matcher with a fixed interpretation reports once and is retired.
       A matcher with an interpret callback stays active only if the
       callback asks for it, or if it is flagged keep_after_match.
    5. The scan also stops when the journal runs out or no matchers remain.

Callbacks receive a ScanContext that lives for exactly one scan of one
unit, so per-scan bookkeeping (which clients were already reported, for
instance) never leaks into another unit or another run.
"""

import logging
import re
from contextlib import closing
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Optional, Pattern, Tuple, Union

from .errors import JournalError
from .journal import JournalReader, LogEntry, decode_entry
from .models import Environment, Level
from .reporter import Reporter

logger = logging.getLogger(__name__)


class ScanOutcome(Enum):
    """Why a scan stopped. All but FAILED are normal endings."""
    BOUNDARY = "boundary"
    EXHAUSTED = "exhausted"
    NO_MATCHERS_LEFT = "no_matchers_left"
    FAILED = "failed"


def _compile(pattern: Union[str, Pattern]) -> Pattern:
    return re.compile(pattern) if isinstance(pattern, str) else pattern


@dataclass
class ScanContext:
    """
    State shared by the matchers of a single scan.

    Attributes:
        unit: The UnitSpec being scanned
        env: Environment snapshot for the run
        reporter: Where findings go
        state: Free-form per-scan storage for interpret callbacks
    """
    unit: 'UnitSpec'
    env: Environment
    reporter: Reporter
    state: Dict[str, Any] = field(default_factory=dict)

    def prelude(self, entry: LogEntry) -> str:
        return f"Found '{self.unit.name}' journald log message:\n  {entry.message}\n"

    def report(self, level: Level, entry: LogEntry, text: str) -> None:
        """Emit a finding about `entry`, prefixed with the unit and raw message."""
        self.reporter.emit(level, self.prelude(entry) + text)

    def first_time(self, key: str, value: Any) -> bool:
        """Record `value` under `key`; True only the first time it is seen in this scan."""
        seen = self.state.setdefault(key, set())
        if value in seen:
            return False
        seen.add(value)
        return True


Interpreter = Callable[[ScanContext, LogEntry, Tuple[Optional[str], ...]], bool]


@dataclass(frozen=True)
class LogMatcher:
    """
    One ordered rule: a message pattern, a severity, and what it means.

    Exactly one of `interpretation` (fixed text) and `interpret` (callback
    returning whether to stay active) must be given.
    """
    pattern: Pattern
    level: Level
    interpretation: str = ""
    interpret: Optional[Interpreter] = None
    keep_after_match: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'pattern', _compile(self.pattern))
        if bool(self.interpretation) == (self.interpret is not None):
            raise ValueError(f"LogMatcher {self.pattern.pattern!r} needs exactly one of "
                             "interpretation or interpret")

    def match(self, message: str) -> Optional[Tuple[Optional[str], ...]]:
        """Capture groups if the pattern occurs in message, else None."""
        found = self.pattern.search(message)
        return found.groups() if found else None

    def apply(self, context: ScanContext, entry: LogEntry,
              groups: Tuple[Optional[str], ...]) -> bool:
        """Report the finding; return True to keep this matcher active."""
        if self.interpret is None:
            context.report(self.level, entry, self.interpretation)
            return self.keep_after_match
        keep = bool(self.interpret(context, entry, groups))
        return keep or self.keep_after_match


@dataclass(frozen=True)
class UnitSpec:
    """The ordered matchers and start boundary for one unit's logs."""
    name: str
    start_match: Pattern
    matchers: Tuple[LogMatcher, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, 'start_match', _compile(self.start_match))
        object.__setattr__(self, 'matchers', tuple(self.matchers))


def scan_entries(unit: UnitSpec, entries: Iterable, env: Environment,
                 reporter: Reporter) -> ScanOutcome:
    """
    Run the matchers of `unit` over newest-first `entries`.

    Entries may be raw journal lines (bytes/str) or LogEntry objects.
    Lines that cannot be decoded are reported at DEBUG and skipped.
    """
    active = list(unit.matchers)
    if not active:
        return ScanOutcome.NO_MATCHERS_LEFT

    context = ScanContext(unit=unit, env=env, reporter=reporter)
    for raw in entries:
        if isinstance(raw, LogEntry):
            entry = raw
        else:
            try:
                entry = decode_entry(raw)
            except ValueError as e:
                reporter.debug(f"Couldn't read the JSON for this log message:\n{raw!r}\n"
                               f"Got error ({type(e).__name__}) {e}")
                continue

        if unit.start_match.search(entry.message):
            logger.debug(f"{unit.name}: reached start boundary")
            return ScanOutcome.BOUNDARY

        for index, matcher in enumerate(active):
            groups = matcher.match(entry.message)
            if groups is None:
                continue
            if not matcher.apply(context, entry, groups):
                del active[index]
            break

        if not active:
            return ScanOutcome.NO_MATCHERS_LEFT

    return ScanOutcome.EXHAUSTED


def match_logs_since_last_start(unit: UnitSpec, env: Environment, reporter: Reporter,
                                reader: Optional[JournalReader] = None) -> ScanOutcome:
    """
    Scan the journal of `unit` back to its most recent start.

    A journal failure is reported once at ERROR and ends this scan only.
    """
    reader = reader or JournalReader()
    try:
        with closing(reader.lines(unit.name)) as lines:
            return scan_entries(unit, lines, env, reporter)
    except JournalError as e:
        reporter.error(
            f"Diagnostics failed to query journalctl for the '{unit.name}' unit logs.\n"
            f"This should be very unusual, so please report the reason:\n{e.message}"
        )
        return ScanOutcome.FAILED
