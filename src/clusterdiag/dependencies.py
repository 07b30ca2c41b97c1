"""
Service Dependency Checker

Turns the probed systemd unit states into findings, using a fixed list
of "dependent needs dependency" pairs. For each pair, at most one of
these fires, checked in this order:

    dependent active or enabled, dependency missing   -> ERROR (install it)
    dependent active, dependency not active           -> ERROR (start it)
    dependent enabled, dependency not enabled         -> WARN  (enable it)

Separately, every unit enabled at boot but not running is an ERROR.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Tuple

from .models import Level, ServiceState
from .reporter import Reporter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnitDependency:
    """`dependent` does not work unless `dependency` is installed and running."""
    dependent: str
    dependency: str
    why: str


NODE_REQUIRES_IPTABLES = """\
iptables is used by nodes for container networking.
Connections to a container will fail without it."""

NODE_REQUIRES_DOCKER = "Nodes use Docker to run containers."

SDN_REQUIRES_OVS = """\
The default SDN plugin uses Open vSwitch to build the overlay network
between nodes. Without it, containers on different nodes cannot reach
each other."""

SDN_MASTER_REQUIRES_MASTER = """\
The SDN master allocates node subnets through the master API and
cannot do anything while the master is down."""

UNIT_DEPENDENCIES: Tuple[UnitDependency, ...] = (
    UnitDependency("openshift-node", "iptables", NODE_REQUIRES_IPTABLES),
    UnitDependency("openshift-node", "docker", NODE_REQUIRES_DOCKER),
    UnitDependency("openshift-node", "openvswitch", SDN_REQUIRES_OVS),
    UnitDependency("openshift-sdn-node", "openvswitch", SDN_REQUIRES_OVS),
    UnitDependency("openshift-sdn-node", "docker", NODE_REQUIRES_DOCKER),
    UnitDependency("openshift-sdn-master", "openshift-master", SDN_MASTER_REQUIRES_MASTER),
)


def check_dependency(dependency: UnitDependency, dependent: ServiceState,
                     required: ServiceState, reporter: Reporter) -> bool:
    """
    Evaluate one dependency pair.

    Returns:
        True if a finding was emitted
    """
    d, r = dependency.dependent, dependency.dependency

    if (dependent.active or dependent.enabled) and not required.exists:
        reporter.emit(Level.ERROR, f"""\
systemd unit {d} depends on unit {r}, which is not loaded.
{dependency.why}
An administrator probably needs to install the {r} unit with:

  # yum install {r}

If it is already installed, you may need to reload the definition with:

  # systemctl reload {r}""")
        return True

    if dependent.active and not required.active:
        reporter.emit(Level.ERROR, f"""\
systemd unit {d} is running but {r} is not.
{dependency.why}
An administrator can start the {r} unit with:

  # systemctl start {r}

To ensure it is not failing to run, check the status and logs with:

  # systemctl status {r}
  # journalctl -ru {r}""")
        return True

    if dependent.enabled and not required.enabled:
        reporter.emit(Level.WARN, f"""\
systemd unit {d} is enabled to run automatically at boot, but {r} is not.
{dependency.why}
An administrator can enable the {r} unit with:

  # systemctl enable {r}""")
        return True

    return False


def check_unit_drift(unit: ServiceState, reporter: Reporter) -> bool:
    """ERROR if the unit is enabled at boot but not running now."""
    if not (unit.enabled and not unit.active):
        return False
    reporter.emit(Level.ERROR, f"""\
The {unit.name} systemd unit is intended to start at boot but is not currently active.
The last exit status was {unit.exit_status}.
An administrator can start the {unit.name} unit with:

  # systemctl start {unit.name}

To ensure it is not repeatedly failing to run, check the status and logs with:

  # systemctl status {unit.name}
  # journalctl -ru {unit.name}""")
    return True


def check_unit_dependencies(services: Mapping[str, ServiceState], reporter: Reporter,
                            dependencies: Tuple[UnitDependency, ...] = UNIT_DEPENDENCIES) -> int:
    """
    Check every dependency pair, then every unit for boot/running drift.

    A pair with either side absent from `services` was not probed and
    is skipped.

    Returns:
        Number of findings emitted
    """
    findings = 0
    for dependency in dependencies:
        dependent = services.get(dependency.dependent)
        required = services.get(dependency.dependency)
        if dependent is None or required is None:
            reporter.debug(f"Not checking {dependency.dependent} -> {dependency.dependency}: "
                           f"unit state unknown")
            continue
        if check_dependency(dependency, dependent, required, reporter):
            findings += 1

    for name in sorted(services):
        if check_unit_drift(services[name], reporter):
            findings += 1

    logger.debug(f"Dependency check produced {findings} finding(s)")
    return findings
