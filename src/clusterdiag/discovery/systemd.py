"""
systemd unit discovery.

Probes each unit of interest with `systemctl show <unit>` and turns its
Key=Value output into a ServiceState.
"""

import logging
from typing import Dict, Iterable, Optional

from ..models import ServiceState
from ..reporter import Reporter
from ..system import run_command

logger = logging.getLogger(__name__)

# Units relevant to a cluster host
KNOWN_UNITS = (
    "openshift",
    "openshift-master",
    "openshift-node",
    "openshift-sdn-master",
    "openshift-sdn-node",
    "docker",
    "openvswitch",
    "iptables",
    "etcd",
    "kubernetes",
)


def parse_systemctl_show(output: str) -> Dict[str, str]:
    """Parse `systemctl show` output into a dict; lines without '=' are ignored."""
    attrs = {}
    for line in output.splitlines():
        key, sep, value = line.partition("=")
        if sep:
            attrs[key.strip()] = value
    return attrs


def unit_state_from_attrs(name: str, attrs: Dict[str, str],
                          reporter: Optional[Reporter] = None) -> ServiceState:
    """Build a ServiceState from parsed `systemctl show` attributes."""
    load_state = attrs.get("LoadState", "")
    if load_state != "loaded":
        if reporter:
            reporter.debug(f"systemd unit '{name}' does not exist. LoadState is '{load_state}'")
        return ServiceState(name=name)

    enabled = attrs.get("UnitFileState", "") == "enabled"
    active = attrs.get("ActiveState", "") == "active"
    try:
        exit_status = int(attrs.get("StatusErrno", "0") or 0)
    except ValueError:
        exit_status = 0

    if reporter:
        if enabled:
            reporter.debug(f"systemd unit '{name}' is enabled - it will start automatically at boot.")
        else:
            reporter.debug(f"systemd unit '{name}' is not enabled - it does not start automatically "
                           f"at boot. UnitFileState is '{attrs.get('UnitFileState', '')}'")
        if active:
            reporter.debug(f"systemd unit '{name}' is currently running")
        else:
            reporter.debug(f"systemd unit '{name}' is not currently running. ActiveState is "
                           f"'{attrs.get('ActiveState', '')}'; exit code was {exit_status}.")

    return ServiceState(name=name, exists=True, enabled=enabled,
                        active=active, exit_status=exit_status)


def probe_unit(name: str, reporter: Reporter, timeout: Optional[float] = None) -> ServiceState:
    """Run `systemctl show` for one unit; failures are reported and yield a non-existent unit."""
    result = run_command(["systemctl", "show", name], timeout=timeout)
    if not result['success']:
        reason = result['error'] or result['stderr'].strip() or f"exit status {result['returncode']}"
        reporter.error(f"Error running `systemctl show {name}`: {reason}\n"
                       f"Cannot analyze systemd units.")
        return ServiceState(name=name)
    return unit_state_from_attrs(name, parse_systemctl_show(result['stdout']), reporter)


def discover_units(reporter: Reporter, names: Iterable[str] = KNOWN_UNITS,
                   timeout: Optional[float] = None) -> Dict[str, ServiceState]:
    """Probe every named unit; the result has one entry per probed name."""
    units = {}
    for name in names:
        unit = probe_unit(name, reporter, timeout=timeout)
        units[name] = unit
        if unit.exists:
            reporter.debug(f"Saw systemd unit {name}")
    logger.debug(f"Probed units: {units}")
    return units
