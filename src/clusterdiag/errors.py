"""Exception types raised inside clusterdiag."""


class DiagnosticsError(Exception):
    """Base class for clusterdiag errors."""


class JournalError(DiagnosticsError):
    """The journal query for a unit could not be started, read, or finished in time."""

    def __init__(self, unit: str, message: str):
        super().__init__(f"{unit}: {message}")
        self.unit = unit
        self.message = message
