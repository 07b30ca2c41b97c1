"""
Client diagnostics: client config contexts and master connectivity.
"""

import re
from typing import List, Optional, Tuple

from ..discovery.client_config import list_contexts
from ..models import ClientConfig, Environment
from ..registry import Diagnostic
from ..reporter import Reporter
from ..system import limit_lines, run_command

CONNECTION_REMEDY = """\
You will not be able to connect or do anything at all with OpenShift
until this server problem is resolved or you specify a corrected
server address."""

INSECURE_WARNING = """\
If you are unconcerned about any of this, you can add the
--insecure-skip-tls-verify flag to bypass secure (TLS) verification,
but this is risky and should not be necessary.
** Connections could be intercepted and your credentials stolen. **"""

# Known connection failures, checked in order; {0} is the last capture group
CONNECTION_ERRORS: List[Tuple[re.Pattern, str]] = [
    (re.compile(r"dial tcp: lookup (\S+): no such host"), """\
This usually means that the hostname does not resolve to an IP.
Hostnames should usually be resolved via an /etc/hosts file or DNS.
Ensure that the hostname resolves correctly from your host before proceeding.
Of course, you could also simply have the wrong hostname specified."""),
    (re.compile(re.escape("x509: certificate signed by unknown authority")), """\
This means that we cannot validate the certificate in use by the
master API server, so we cannot securely communicate with it.
Connections could be intercepted and your credentials stolen.

Since the server certificate we see when connecting is not validated
by public certificate authorities (CAs), you probably need to specify a
certificate from a private CA to validate the connection.

You may be specifying the wrong CA cert, or none, or there could
actually be a man-in-the-middle attempting to intercept your
connection.
""" + INSECURE_WARNING),
    (re.compile(re.escape("specifying a root certificates file with the insecure flag is not allowed")), """\
This means that for client connections to the master API server, you
(or your client config) specified both a validating certificate authority
and that the client should bypass connection security validation.

This is not allowed because it is likely to be a mistake.

If you want to use --insecure-skip-tls-verify to bypass security (which
is usually a bad idea anyway), then you need to also clear the CA cert
from your command line options or client config file(s). Of course, it
would be far better to obtain and use a correct CA cert."""),
    (re.compile(r"x509: certificate is valid for (?:\S+, )+not (\S+)"), """\
This means that the certificate in use by the master API server
does not match the hostname by which you are addressing it:
  {0}
so a secure connection is not allowed.

The most likely explanation is that the server certificate needs to be
updated to include the name you are using to reach it. If the master is
generating its own certificates (the default), the --public-master flag
on the master is usually the easiest way to do this.
""" + INSECURE_WARNING),
    (re.compile(r"dial tcp (\S+): connection refused"), """\
This means that when we tried to connect to the master API server at
{0}, we reached the host, but nothing accepted the port connection.
This could mean that the master is stopped, or that a firewall or
security policy is blocking access at that port.

""" + CONNECTION_REMEDY),
    (re.compile(r"dial tcp (\S+): (?:i/o|connection) timed? ?out"), """\
This means that when we tried to connect to the master API server at
{0}, we could not reach the host at all.
* You may have specified the wrong host address.
* This could mean the host is completely unavailable (down).
* This could indicate a routing problem or a firewall that simply
  drops requests rather than responding by resetting the connection.
* It does not generally mean that DNS name resolution failed (which
  would be a different error) though the problem could be that it
  gave the wrong address."""),
    (re.compile(re.escape("malformed HTTP response")), """\
This means that when we tried to connect to the master API server with
a plain HTTP connection, the server did not speak HTTP back to us. The
most common explanation is that a secure server is listening but you
specified an http: connection instead of https:. There could also be
another service listening at the intended port speaking some other
protocol entirely.

""" + CONNECTION_REMEDY),
    (re.compile(re.escape("tls: oversized record received with length")), """\
This means that when we tried to connect to the master API server with
a secure HTTPS connection, the server did not speak HTTPS back to us.
The most common explanation is that the server listening at that port is
not the secure server you expected - it may be a non-secure HTTP server
or the wrong service may be listening there, or you may have specified
an incorrect port.

""" + CONNECTION_REMEDY),
]

UNKNOWN_CONNECTION_ERROR = ("Diagnostics does not have an explanation for what this means. "
                            "Please report this error so one can be added.")


def explain_connection_error(message: str) -> str:
    """Pick the explanation for the first known failure found in `message`."""
    for pattern, explanation in CONNECTION_ERRORS:
        match = pattern.search(message)
        if match:
            groups = match.groups()
            return explanation.format(groups[-1] if groups else "")
    return UNKNOWN_CONNECTION_ERROR


def describe_context(name: str, config: ClientConfig) -> Tuple[str, bool]:
    """
    Describe one client config context.

    Returns:
        (description, usable)
    """
    context = config.contexts.get(name)
    if context is None:
        return f"client config context '{name}' is not defined.", False

    cluster_name = context.get("cluster", "")
    cluster = config.clusters.get(cluster_name)
    if cluster is None:
        return (f"client config context '{name}' has a cluster '{cluster_name}' "
                f"which is not defined."), False

    project = context.get("namespace") or "default"
    return (f"\nThe server URL is '{cluster.get('server', '')}'"
            f"\nThe user authentication is '{context.get('user', '')}'"
            f"\nThe project is '{project}'"), True


class KubeconfigContexts(Diagnostic):
    name = "KubeconfigContexts"
    description = "Test that client config contexts and current context are ok"

    def condition(self, env: Environment) -> Tuple[bool, str]:
        if env.client_config is None:
            return True, "There is no client config file"
        return False, ""

    def run(self, env: Environment, reporter: Reporter) -> None:
        config = env.client_config
        reporter.info("Testing server configuration(s) from client config")
        current = config.current_context
        current_result: Optional[Tuple[str, bool]] = None

        for name in list_contexts(config):
            result, success = describe_context(name, config)
            result = f"For client config context '{name}':{result}"
            if name == current:
                current_result = (result, success)
            elif success:
                reporter.info(result)
            else:
                reporter.warn(result)

        if current_result is None:
            reporter.error(f"""\
Your client config specifies a current context of '{current}'
which is not defined; it is likely that a mistake was introduced while
manually editing your client config. If this is a simple typo, you may be
able to fix it manually.
The master creates a fresh client config when it is started; it may be
useful to use this as a base if available.""")
            return

        result, success = current_result
        message = (f"The current context from client config is '{current}'\n"
                   f"This will be used by default to contact your OpenShift server.\n{result}")
        if success:
            reporter.info(message)
        else:
            reporter.error(message)


class ContactMaster(Diagnostic):
    name = "ContactMaster"
    description = "Test contacting the OpenShift master"

    def condition(self, env: Environment) -> Tuple[bool, str]:
        if not env.client_path:
            return True, "No client binary was found to contact the master with"
        return False, ""

    def command(self, env: Environment) -> List[str]:
        command = [env.client_path, "get", "projects"]
        if env.client_config is not None:
            command.append(f"--config={env.client_config_path}")
        return command

    def run(self, env: Environment, reporter: Reporter) -> None:
        command = self.command(env)
        result = run_command(command)
        if result['success']:
            reporter.info("Successfully requested project list from OpenShift master")
            return

        if result['timed_out'] or (result['error'] and not result['stderr']):
            reporter.error(f"Could not run `{' '.join(command)}`: {result['error']}")
            return

        message = (result['stderr'] or result['stdout']).strip()
        reporter.error(f"{limit_lines(message, 10)}\n{explain_connection_error(message)}")


DIAGNOSTICS = [KubeconfigContexts(), ContactMaster()]
