"""
Built-in diagnostics, grouped by area.

A diagnostic is addressed on the command line as "area.name",
e.g. "systemd.AnalyzeLogs".
"""

from . import client, systemd

ALL_DIAGNOSTICS = {
    "client": client.DIAGNOSTICS,
    "systemd": systemd.DIAGNOSTICS,
}

__all__ = ['ALL_DIAGNOSTICS']
