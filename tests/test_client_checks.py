"""
Tests for the client diagnostics (contexts and master connectivity).

Run: python3 -m pytest tests/test_client_checks.py -v
"""

import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from clusterdiag.checks.client import (
    UNKNOWN_CONNECTION_ERROR,
    ContactMaster,
    KubeconfigContexts,
    describe_context,
    explain_connection_error,
)
from clusterdiag.models import ClientConfig, Environment, Level
from clusterdiag.render import CollectingRenderer
from clusterdiag.reporter import Reporter

CONFIG = ClientConfig(
    path="/home/alice/.kube/config",
    current_context="dev",
    contexts={
        "dev": {"cluster": "local", "user": "alice"},
        "broken": {"cluster": "elsewhere", "user": "bob"},
    },
    clusters={"local": {"server": "https://master.example.com:8443"}},
    auth_infos={"alice": {"token": "abc"}},
)


def make_reporter():
    renderer = CollectingRenderer()
    return Reporter(renderer, threshold=Level.DEBUG), renderer


class TestExplainConnectionError:
    """Tests for explain_connection_error()"""

    def test_unknown_host(self):
        text = explain_connection_error(
            "Get https://nohost:8443/api: dial tcp: lookup nohost: no such host")
        assert "does not resolve to an IP" in text

    def test_connection_refused_names_address(self):
        text = explain_connection_error(
            "Get https://10.0.0.5:8443/api: dial tcp 10.0.0.5:8443: connection refused")
        assert "10.0.0.5:8443" in text
        assert "nothing accepted the port connection" in text

    def test_hostname_mismatch(self):
        text = explain_connection_error(
            "x509: certificate is valid for master.local, 172.17.0.1, not public.example.com")
        assert "  public.example.com\n" in text

    def test_unknown_error(self):
        assert explain_connection_error("something odd happened") == UNKNOWN_CONNECTION_ERROR


class TestDescribeContext:
    def test_usable_context(self):
        text, ok = describe_context("dev", CONFIG)
        assert ok
        assert "The server URL is 'https://master.example.com:8443'" in text
        assert "The project is 'default'" in text

    def test_undefined_cluster(self):
        text, ok = describe_context("broken", CONFIG)
        assert not ok
        assert "'elsewhere'" in text

    def test_undefined_context(self):
        _, ok = describe_context("missing", CONFIG)
        assert not ok


class TestKubeconfigContexts:
    """Tests for the KubeconfigContexts diagnostic."""

    def test_skipped_without_config(self):
        skip, reason = KubeconfigContexts().condition(Environment())
        assert skip
        assert reason == "There is no client config file"

    def test_reports_contexts(self):
        reporter, renderer = make_reporter()
        KubeconfigContexts().run(Environment(client_config=CONFIG), reporter)

        assert reporter.error_count == 0
        assert reporter.warning_count == 1
        assert "'broken'" in renderer.at(Level.WARN)[0]
        assert any(text.startswith("The current context from client config is 'dev'")
                   for text in renderer.at(Level.INFO))

    def test_undefined_current_context(self):
        config = ClientConfig(path="/tmp/config", current_context="prod", contexts=CONFIG.contexts,
                              clusters=CONFIG.clusters)
        reporter, renderer = make_reporter()

        KubeconfigContexts().run(Environment(client_config=config), reporter)

        assert reporter.error_count == 1
        assert "current context of 'prod'" in renderer.at(Level.ERROR)[0]


class TestContactMaster:
    """Tests for the ContactMaster diagnostic."""

    def test_skipped_without_client(self):
        skip, _ = ContactMaster().condition(Environment())
        assert skip

    def test_command_uses_config(self):
        env = Environment(client_path="/usr/bin/osc", client_config=CONFIG,
                          client_config_path=CONFIG.path)
        assert ContactMaster().command(env) == [
            "/usr/bin/osc", "get", "projects", "--config=/home/alice/.kube/config"
        ]

    @patch('clusterdiag.checks.client.run_command')
    def test_success(self, mock_run):
        mock_run.return_value = {'returncode': 0, 'stdout': 'NAME\ndefault\n', 'stderr': '',
                                 'success': True, 'timed_out': False, 'error': None}
        reporter, renderer = make_reporter()

        ContactMaster().run(Environment(client_path="/usr/bin/osc"), reporter)

        assert renderer.at(Level.INFO) == ["Successfully requested project list from OpenShift master"]

    @patch('clusterdiag.checks.client.run_command')
    def test_connection_refused(self, mock_run):
        stderr = "Get https://10.0.0.5:8443/api: dial tcp 10.0.0.5:8443: connection refused\n"
        mock_run.return_value = {'returncode': 1, 'stdout': '', 'stderr': stderr,
                                 'success': False, 'timed_out': False, 'error': None}
        reporter, renderer = make_reporter()

        ContactMaster().run(Environment(client_path="/usr/bin/osc"), reporter)

        error = renderer.at(Level.ERROR)[0]
        assert error.startswith("Get https://10.0.0.5:8443/api")
        assert "nothing accepted the port connection" in error

    @patch('clusterdiag.checks.client.run_command')
    def test_timeout(self, mock_run):
        mock_run.return_value = {'returncode': -1, 'stdout': '',
                                 'stderr': 'Command timed out after 10 seconds',
                                 'success': False, 'timed_out': True,
                                 'error': 'timed out after 10 seconds'}
        reporter, renderer = make_reporter()

        ContactMaster().run(Environment(client_path="/usr/bin/osc"), reporter)

        assert renderer.at(Level.ERROR) == [
            "Could not run `/usr/bin/osc get projects`: timed out after 10 seconds"
        ]
