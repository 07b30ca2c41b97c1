"""
systemd diagnostics: journal analysis and unit status.

UNIT_LOG_SPECS lists, per unit, the message marking the unit's most
recent start and the known problem messages to look for after it.
Matchers are checked in order, so specific patterns go before generic
ones.
"""

from typing import Iterable, Optional, Tuple

from ..dependencies import check_unit_dependencies
from ..journal import JournalReader, LogEntry
from ..log_matcher import LogMatcher, ScanContext, UnitSpec, match_logs_since_last_start
from ..models import Environment, Level
from ..registry import Diagnostic
from ..reporter import Reporter


# === Reusable matchers ===

BAD_IMAGE_TEMPLATE = LogMatcher(
    pattern=r"Unable to find an image for .* due to an error processing the format: %!v\(MISSING\)",
    level=Level.INFO,
    interpretation="""\
This error indicates openshift was given the flag --images including an invalid format variable.
Valid formats can include (literally) ${component} and ${version}.
This could be a typo or you might be intending to hardcode something,
such as a version which should be specified as e.g. v3.0, not ${v3.0}.
Note that if you want the variables to be interpreted by openshift
rather than the shell, you must quote them with single quotes.""",
)

TLS_BAD_CERT_CLIENTS = "tls_bad_cert_clients"


def _interpret_bad_client_cert(context: ScanContext, entry: LogEntry,
                               groups: Tuple[Optional[str], ...]) -> bool:
    """Report the first bad-certificate client in full, later distinct clients briefly."""
    client = groups[0]
    if not context.first_time(TLS_BAD_CERT_CLIENTS, client):
        return True
    if len(context.state[TLS_BAD_CERT_CLIENTS]) == 1:
        context.report(Level.WARN, entry, f"""\
This error indicates that a client ({client}) attempted to connect to the
master HTTPS API server but broke off the connection because the master's
certificate is not validated by a certificate authority (CA) acceptable
to the client. There are a number of ways this can occur, some more
problematic than others.

At this time, the master API certificate is signed by a private CA
(created the first time the master runs) and clients should have a copy of
that CA certificate in order to validate connections to the master. Most
likely, either:
1. the master has generated a new CA (after the administrator deleted
   the old one) and the client has a copy of the old CA cert, or
2. the client hasn't been configured with a private CA at all (or the
   wrong one), or
3. the client is attempting to reach the master at a URL that isn't
   covered by the master's server certificate, e.g. a public-facing
   name or IP that isn't known to the master automatically.

Nodes and other infrastructure clients use their own client config and
CA file; if they are failing, those files may need to be regenerated.""")
    else:
        context.report(Level.WARN, entry,
                       f"This error repeats for client {client}; see the earlier "
                       f"explanation of bad certificate handshakes.")
    return True


def _interpret_node_services(context: ScanContext, entry: LogEntry,
                             groups: Tuple[Optional[str], ...]) -> bool:
    url, reason = groups
    context.report(Level.ERROR, entry, f"""\
The node could not load services from the master at:
  {url}
because of this error:
  {reason}
Until the node can reach the master, containers on this node will not
be able to reach services. Check that the master is running and that
the master URL in the node configuration is correct and reachable
from this host.""")
    return False


def _interpret_graphdriver(context: ScanContext, entry: LogEntry,
                           groups: Tuple[Optional[str], ...]) -> bool:
    context.report(Level.ERROR, entry, f"""\
Docker could not initialize its storage (graph) driver:
  {groups[0]}
Docker will not start until this is resolved, so the node cannot run
containers. Check the storage options in /etc/sysconfig/docker-storage
and that the backing device or thin pool exists and has free space.""")
    return False


UNIT_LOG_SPECS: Tuple[UnitSpec, ...] = (
    UnitSpec(
        name="openshift-master",
        start_match=r"Starting an OpenShift master",
        matchers=(
            BAD_IMAGE_TEMPLATE,
            LogMatcher(
                pattern=r"http: TLS handshake error from ([\d.]+):\d+: remote error: bad certificate",
                level=Level.WARN,
                interpret=_interpret_bad_client_cert,
                keep_after_match=True,
            ),
            LogMatcher(
                pattern=r"Unable to decode an event from the watch stream",
                level=Level.INFO,
                interpretation="This is a completely innocuous message; pay it no mind.",
            ),
        ),
    ),
    UnitSpec(
        name="openshift-node",
        start_match=r"Starting an OpenShift node",
        matchers=(
            BAD_IMAGE_TEMPLATE,
            LogMatcher(
                pattern=r"Unable to load services: Get (http\S+/api/\S+/services\S*): (.+)",
                level=Level.ERROR,
                interpret=_interpret_node_services,
            ),
            LogMatcher(
                pattern=r"Could not find an allocated subnet for (?:this )?(?:minion|node)",
                level=Level.ERROR,
                interpretation="""\
The SDN on this node has not been given a subnet by the SDN master.
This usually means the node is not registered with the master, or the
openshift-sdn-master unit is not running. Pods on this node will not get
network connectivity until a subnet is allocated.""",
            ),
        ),
    ),
    UnitSpec(
        name="docker",
        start_match=r'msg="\+job serveapi\(',
        matchers=(
            LogMatcher(
                pattern=r"Usage: docker \[OPTIONS\] COMMAND",
                level=Level.ERROR,
                interpretation="""\
This indicates that docker failed to parse its command line
successfully, so it just printed a standard usage message and exited.
Its command line is built from variables in /etc/sysconfig/docker
(which may be overridden by variables in /etc/sysconfig/openshift-node)
so check there for problems.

The OpenShift node will not work on this host until this is resolved.""",
            ),
            LogMatcher(
                pattern=r"error initializing graphdriver: (.+)",
                level=Level.ERROR,
                interpret=_interpret_graphdriver,
            ),
            # generic error seen - do this last
            LogMatcher(
                pattern=r'\slevel="fatal"\s',
                level=Level.ERROR,
                interpretation="""\
This is not a known problem, but it is causing Docker to crash,
so the OpenShift node will not work on this host until it is resolved.""",
            ),
        ),
    ),
)


class AnalyzeLogs(Diagnostic):
    """Scan the journal of each monitored unit back to its last start."""

    name = "AnalyzeLogs"
    description = "Check journald for known problems in relevant systemd unit logs"

    def __init__(self, unit_specs: Iterable[UnitSpec] = UNIT_LOG_SPECS,
                 reader: Optional[JournalReader] = None):
        self.unit_specs = tuple(unit_specs)
        self.reader = reader

    def condition(self, env: Environment) -> Tuple[bool, str]:
        if not env.has_systemd:
            return True, "systemd is not present on this host"
        if not env.server_path:
            return True, ("`openshift` binary not in the path on this host; "
                          "for now, we assume host is not a server")
        return False, ""

    def run(self, env: Environment, reporter: Reporter) -> None:
        reader = self.reader or JournalReader()
        for unit in self.unit_specs:
            state = env.service(unit.name)
            if state is not None and (state.enabled or state.active):
                reporter.info(f"Checking journalctl logs for '{unit.name}' unit")
                match_logs_since_last_start(unit, env, reporter, reader)


class UnitStatus(Diagnostic):
    """Check the probed units against each other and against their boot setting."""

    name = "UnitStatus"
    description = "Check status for related systemd units"

    def condition(self, env: Environment) -> Tuple[bool, str]:
        if not env.has_systemd:
            return True, "systemd is not present on this host"
        if not any(state.exists for state in env.services.values()):
            return True, "No relevant systemd units were found on this host"
        return False, ""

    def run(self, env: Environment, reporter: Reporter) -> None:
        check_unit_dependencies(env.services, reporter)


DIAGNOSTICS = [AnalyzeLogs(), UnitStatus()]
