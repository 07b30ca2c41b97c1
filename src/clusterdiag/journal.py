"""
Journal access for log analysis.

Wraps `journalctl -r -u <unit> --output=json`, which prints one JSON
record per line, newest first. Only the MESSAGE field is interpreted.

The reader enforces a deadline on the whole query: when it passes, the
journalctl process is killed and JournalError is raised, so a hung
journal can only cost one check, never the whole run.
"""

import json
import logging
import subprocess
import threading
from dataclasses import dataclass, field
from typing import Any, Iterator, List, Mapping, Optional

from .config import get_config_int
from .errors import JournalError

logger = logging.getLogger(__name__)

MESSAGE_FIELD = 'MESSAGE'


@dataclass(frozen=True)
class LogEntry:
    """One decoded journal record."""
    message: str
    fields: Mapping[str, Any] = field(default_factory=dict)


def decode_entry(line) -> LogEntry:
    """
    Decode one line of `journalctl --output=json`.

    journald emits MESSAGE as an array of byte values when it is not
    valid UTF-8; those are decoded with replacement characters.

    Raises:
        ValueError: if the line is not a JSON object or MESSAGE is malformed
    """
    record = json.loads(line)
    if not isinstance(record, dict):
        raise ValueError(f"expected a JSON object, got {type(record).__name__}")

    message = record.get(MESSAGE_FIELD)
    if message is None:
        message = ""
    elif isinstance(message, list):
        try:
            message = bytes(message).decode('utf-8', 'replace')
        except TypeError as e:
            raise ValueError(f"MESSAGE array is not a list of byte values: {e}") from e
    elif not isinstance(message, str):
        message = str(message)
    return LogEntry(message=message, fields=record)


class JournalReader:
    """Streams raw journal lines for a unit, newest first."""

    def __init__(self, timeout: Optional[float] = None, executable: str = 'journalctl'):
        if timeout is None:
            timeout = get_config_int('CLUSTERDIAG_JOURNAL_TIMEOUT')
        self.timeout = timeout
        self.executable = executable

    def command_for(self, unit: str) -> List[str]:
        return [self.executable, '-r', '-u', unit, '--output=json', '--no-pager']

    def lines(self, unit: str) -> Iterator[bytes]:
        """
        Yield raw JSON lines for `unit`.

        Close the generator (contextlib.closing) to stop early; the
        journalctl process is then terminated and reaped.

        Raises:
            JournalError: journalctl could not start, failed, or timed out
        """
        command = self.command_for(unit)
        logger.debug(f"Running {command} (timeout {self.timeout}s)")
        try:
            proc = subprocess.Popen(command, stdout=subprocess.PIPE, stderr=subprocess.PIPE)
        except OSError as e:
            raise JournalError(unit, f"could not run {' '.join(command)}: "
                                     f"({type(e).__name__}) {e}") from e

        expired = threading.Event()

        def expire():
            expired.set()
            proc.kill()

        timer = threading.Timer(self.timeout, expire)
        timer.daemon = True
        timer.start()

        stderr = b''
        try:
            for line in proc.stdout:
                if expired.is_set():
                    break
                line = line.strip()
                if line:
                    yield line
        finally:
            timer.cancel()
            stderr = _reap(proc)

        if expired.is_set():
            logger.warning(f"journalctl for {unit} killed after {self.timeout}s")
            raise JournalError(unit, f"journalctl timed out after {self.timeout} seconds")
        if proc.returncode:
            detail = stderr.decode('utf-8', 'replace').strip()
            raise JournalError(unit, f"journalctl exited with status {proc.returncode}"
                                     + (f": {detail}" if detail else ""))


def _reap(proc: subprocess.Popen) -> bytes:
    """Stop the process if it is still running and collect its stderr."""
    if proc.poll() is None:
        proc.terminate()
    try:
        _, stderr = proc.communicate(timeout=5)
    except subprocess.TimeoutExpired:
        proc.kill()
        _, stderr = proc.communicate()
    return stderr or b''
