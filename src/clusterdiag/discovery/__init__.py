"""
Environment discovery for clusterdiag.

Examines the host once and returns an immutable Environment that every
diagnostic reads. Discovery reports what it finds through the same
Reporter as the diagnostics.

Usage:
    from clusterdiag.discovery import run_discovery
    env = run_discovery(reporter, DiscoveryOptions(client_path='/usr/bin/osc'))
"""

import os
from dataclasses import dataclass
from typing import Optional

from ..models import Environment, Version
from ..reporter import Reporter
from ..system import get_distro_name, get_os_name, has_bash, has_systemd
from .client_config import read_client_config
from .executables import (
    CLIENT_BINARY,
    SERVER_BINARY,
    find_exec_and_log,
    get_exec_version,
)
from .systemd import KNOWN_UNITS, discover_units

__all__ = [
    'DiscoveryOptions',
    'run_discovery',
    'KNOWN_UNITS',
]


@dataclass
class DiscoveryOptions:
    """User-supplied hints for discovery (normally from the command line)."""
    client_path: str = ""
    server_path: str = ""
    config_path: str = ""
    command_timeout: Optional[float] = None


def run_discovery(reporter: Reporter, options: Optional[DiscoveryOptions] = None) -> Environment:
    """Examine the system and return the findings as an Environment."""
    options = options or DiscoveryOptions()

    os_name = get_os_name()
    systemd = has_systemd()

    reporter.debug("Searching for executables in path:\n  "
                   + "\n  ".join(os.environ.get("PATH", "").split(os.pathsep)))
    client_path = find_exec_and_log(CLIENT_BINARY, reporter, options.client_path)
    client_version = (get_exec_version(client_path, reporter, options.command_timeout)
                      if client_path else Version())
    server_path = find_exec_and_log(SERVER_BINARY, reporter, options.server_path)
    server_version = (get_exec_version(server_path, reporter, options.command_timeout)
                      if server_path else Version())

    if client_version.is_set() and server_version.is_set() and client_version != server_version:
        reporter.warn(f"'{SERVER_BINARY}' version {server_version} does not match "
                      f"'{CLIENT_BINARY}' version {client_version}; "
                      f"update or remove the lower version")

    config_path, client_config = read_client_config(reporter, options.config_path)

    services = {}
    if systemd and server_path:
        services = discover_units(reporter, KNOWN_UNITS, timeout=options.command_timeout)
    else:
        # Without the server binary we assume this host does not run cluster services
        reporter.debug("Not probing systemd units: systemd or the server binary is absent")

    return Environment(
        os=os_name,
        distro_name=get_distro_name(),
        has_systemd=systemd,
        has_bash=has_bash(),
        client_path=client_path,
        client_version=client_version,
        server_path=server_path,
        server_version=server_version,
        client_config_path=config_path,
        client_config=client_config,
        services=services,
    )
