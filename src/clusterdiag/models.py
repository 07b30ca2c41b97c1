"""
Shared Diagnostic Data Models

These data structures are used by every part of clusterdiag:
- Level: severity of a reported message, totally ordered by rank
- Environment: read-only snapshot of discovered host and client facts
- ServiceState: facts about one systemd unit

Discovery builds an Environment once; diagnostics only read it.
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Mapping, Optional


# === Severity ===

class Level(Enum):
    """
    Severity of a reported message.

    Lower rank means higher severity. A display threshold admits every
    level whose rank is <= the threshold rank. NOTICE shares INFO's rank
    but is rendered under its own name.
    """
    ERROR = (0, "error", "ERROR: ", "error")
    WARN = (1, "warn", "WARN:  ", "warning")
    NOTICE = (2, "notice", "[Note] ", "notice")
    INFO = (2, "info", "Info:  ", "info")
    DEBUG = (3, "debug", "debug: ", "debug")

    def __init__(self, rank: int, label: str, prefix: str, style: str):
        self.rank = rank
        self.label = label
        self.prefix = prefix
        self.style = style

    def admits(self, threshold: 'Level') -> bool:
        """True if a message at this level passes the given threshold."""
        return self.rank <= threshold.rank

    def __lt__(self, other):
        if not isinstance(other, Level):
            return NotImplemented
        return self.rank < other.rank

    @classmethod
    def from_rank(cls, rank: int) -> 'Level':
        """Map a numeric threshold (0=Error .. 3=Debug) to a Level."""
        ordered = [cls.ERROR, cls.WARN, cls.INFO, cls.DEBUG]
        rank = max(0, min(int(rank), len(ordered) - 1))
        return ordered[rank]


# === Discovered facts ===

_VERSION_RE = re.compile(r'^(\S+)\s+v(\d+)\.(\d+)\.(\d+)')


@dataclass(frozen=True)
class Version:
    """Semantic version reported by an executable's `version` command."""
    major: int = 0
    minor: int = 0
    patch: int = 0

    def is_set(self) -> bool:
        return (self.major, self.minor, self.patch) != (0, 0, 0)

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"

    @staticmethod
    def parse(output: str) -> Optional[tuple]:
        """
        Parse `<name> v<x>.<y>.<z>` from version output.

        Returns:
            (name, Version) or None if the output does not look like a version
        """
        match = _VERSION_RE.match(output.strip())
        if not match:
            return None
        name, x, y, z = match.groups()
        return name, Version(int(x), int(y), int(z))


@dataclass(frozen=True)
class ServiceState:
    """
    Facts about one systemd unit, as reported by `systemctl show`.

    Attributes:
        name: Unit name without the .service suffix
        exists: LoadState is "loaded"
        enabled: UnitFileState is "enabled" (starts at boot)
        active: ActiveState is "active" (currently running)
        exit_status: StatusErrno of the last run
    """
    name: str
    exists: bool = False
    enabled: bool = False
    active: bool = False
    exit_status: int = 0


@dataclass(frozen=True)
class ClientConfig:
    """
    Parsed client configuration (kubeconfig).

    contexts maps a context name to {'cluster', 'user', 'namespace'};
    clusters maps a cluster name to {'server', ...}.
    """
    path: str
    current_context: str = ""
    contexts: Mapping[str, Dict[str, str]] = field(default_factory=dict)
    clusters: Mapping[str, Dict[str, str]] = field(default_factory=dict)
    auth_infos: Mapping[str, Dict[str, str]] = field(default_factory=dict)


@dataclass(frozen=True)
class Environment:
    """
    Immutable snapshot of everything discovery learned about this host.

    Built once per run and shared by every diagnostic. The services
    mapping is wrapped read-only; a unit absent from it was not probed.
    """
    os: str = ""
    distro_name: str = ""
    has_systemd: bool = False
    has_bash: bool = False

    client_path: str = ""
    client_version: Version = field(default_factory=Version)
    server_path: str = ""
    server_version: Version = field(default_factory=Version)

    client_config_path: str = ""
    client_config: Optional[ClientConfig] = None

    services: Mapping[str, ServiceState] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, 'services', MappingProxyType(dict(self.services)))

    def service(self, name: str) -> Optional[ServiceState]:
        """Return the probed state of a unit, or None if it was not probed."""
        return self.services.get(name)
