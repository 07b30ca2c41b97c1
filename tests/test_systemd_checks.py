"""
Tests for the systemd diagnostics and the built-in unit log rules.

Run: python3 -m pytest tests/test_systemd_checks.py -v
"""

import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from clusterdiag.checks.systemd import UNIT_LOG_SPECS, AnalyzeLogs, UnitStatus
from clusterdiag.journal import LogEntry
from clusterdiag.log_matcher import ScanOutcome, scan_entries
from clusterdiag.models import Environment, Level, ServiceState
from clusterdiag.render import CollectingRenderer
from clusterdiag.reporter import Reporter

SPECS = {spec.name: spec for spec in UNIT_LOG_SPECS}


def make_reporter():
    renderer = CollectingRenderer()
    return Reporter(renderer, threshold=Level.DEBUG), renderer


def bad_cert(ip):
    return LogEntry(f"http: TLS handshake error from {ip}:51234: remote error: bad certificate")


class FakeReader:
    def __init__(self, journals):
        self.journals = journals
        self.queried = []

    def lines(self, unit):
        self.queried.append(unit)
        for message in self.journals.get(unit, []):
            yield json.dumps({"MESSAGE": message}).encode()


class TestMasterRules:
    """Tests for the openshift-master log rules."""

    def test_bad_certificate_reported_once_per_client(self):
        reporter, renderer = make_reporter()
        entries = [bad_cert("10.0.0.1"), bad_cert("10.0.0.1"), bad_cert("10.0.0.2"),
                   bad_cert("10.0.0.1")]

        scan_entries(SPECS["openshift-master"], entries, Environment(), reporter)

        warnings = renderer.at(Level.WARN)
        assert len(warnings) == 2
        assert "a client (10.0.0.1) attempted to connect" in warnings[0]
        assert "This error repeats for client 10.0.0.2" in warnings[1]

    def test_bad_certificate_state_resets_between_scans(self):
        reporter, renderer = make_reporter()
        scan_entries(SPECS["openshift-master"], [bad_cert("10.0.0.1")], Environment(), reporter)
        scan_entries(SPECS["openshift-master"], [bad_cert("10.0.0.1")], Environment(), reporter)

        warnings = renderer.at(Level.WARN)
        assert len(warnings) == 2
        assert all("a client (10.0.0.1) attempted to connect" in text for text in warnings)

    def test_watch_stream_noise_is_info(self):
        reporter, renderer = make_reporter()
        scan_entries(SPECS["openshift-master"],
                     [LogEntry("Unable to decode an event from the watch stream: EOF")],
                     Environment(), reporter)
        assert renderer.at(Level.INFO)[0].endswith("pay it no mind.")
        assert reporter.warning_count == 0


class TestNodeRules:
    def test_services_unreachable(self):
        reporter, renderer = make_reporter()
        message = ("Unable to load services: Get https://master:8443/api/v1beta3/services"
                   "?namespace=: dial tcp 10.0.0.5:8443: connection refused")

        outcome = scan_entries(SPECS["openshift-node"], [LogEntry(message)], Environment(), reporter)

        assert outcome is ScanOutcome.EXHAUSTED
        error = renderer.at(Level.ERROR)[0]
        assert "https://master:8443/api/v1beta3/services?namespace=" in error
        assert "connection refused" in error


class TestDockerRules:
    def test_generic_fatal_is_last(self):
        """The usage rule wins over the generic fatal rule for the same entry."""
        reporter, renderer = make_reporter()
        message = 'time="x" level="fatal" msg="Usage: docker [OPTIONS] COMMAND [arg...]"'

        scan_entries(SPECS["docker"], [LogEntry(message)], Environment(), reporter)

        errors = renderer.at(Level.ERROR)
        assert len(errors) == 1
        assert "failed to parse its command line" in errors[0]

    def test_boundary(self):
        reporter, renderer = make_reporter()
        entries = [LogEntry('time="x" level="info" msg="+job serveapi(unix:///var/run/docker.sock)"'),
                   LogEntry('time="x" level="fatal" msg="old crash"')]

        outcome = scan_entries(SPECS["docker"], entries, Environment(), reporter)

        assert outcome is ScanOutcome.BOUNDARY
        assert reporter.error_count == 0


class TestAnalyzeLogs:
    """Tests for the AnalyzeLogs diagnostic."""

    def test_skipped_without_systemd(self):
        skip, reason = AnalyzeLogs().condition(Environment(server_path="/usr/bin/openshift"))
        assert skip
        assert reason == "systemd is not present on this host"

    def test_skipped_without_server(self):
        skip, reason = AnalyzeLogs().condition(Environment(has_systemd=True))
        assert skip
        assert "`openshift` binary not in the path" in reason

    def test_scans_only_enabled_or_active_units(self):
        reader = FakeReader({
            "docker": ['time="x" level="fatal" msg="something bad"'],
            "openshift-node": ["Could not find an allocated subnet for this node"],
        })
        env = Environment(has_systemd=True, server_path="/usr/bin/openshift", services={
            "openshift-master": ServiceState("openshift-master", exists=True),
            "openshift-node": ServiceState("openshift-node", exists=True, active=True),
            "docker": ServiceState("docker", exists=True, enabled=True),
        })
        reporter, renderer = make_reporter()

        AnalyzeLogs(reader=reader).run(env, reporter)

        assert reader.queried == ["openshift-node", "docker"]
        assert reporter.error_count == 2
        assert "Checking journalctl logs for 'docker' unit" in renderer.at(Level.INFO)

    def test_malformed_record_does_not_stop_later_units(self):
        class RawReader(FakeReader):
            def lines(self, unit):
                self.queried.append(unit)
                for record in self.journals.get(unit, []):
                    yield json.dumps(record).encode()

        reader = RawReader({
            "openshift-node": [{"MESSAGE": [{"k": 1}]}],
            "docker": [{"MESSAGE": 'time="x" level="fatal" msg="something bad"'}],
        })
        env = Environment(has_systemd=True, server_path="/usr/bin/openshift", services={
            "openshift-node": ServiceState("openshift-node", exists=True, active=True),
            "docker": ServiceState("docker", exists=True, active=True),
        })
        reporter, renderer = make_reporter()

        AnalyzeLogs(reader=reader).run(env, reporter)

        assert reader.queried == ["openshift-node", "docker"]
        assert reporter.error_count == 1
        assert "causing Docker to crash" in renderer.at(Level.ERROR)[0]


class TestUnitStatus:
    def test_skipped_without_units(self):
        env = Environment(has_systemd=True, services={"docker": ServiceState("docker")})
        skip, reason = UnitStatus().condition(env)
        assert skip
        assert reason == "No relevant systemd units were found on this host"

    def test_runs_dependency_checks(self):
        env = Environment(has_systemd=True, services={
            "openshift-node": ServiceState("openshift-node", exists=True, enabled=True, active=True),
            "docker": ServiceState("docker", exists=True, enabled=False, active=False),
            "iptables": ServiceState("iptables", exists=True, enabled=True, active=True),
            "openvswitch": ServiceState("openvswitch", exists=True, enabled=True, active=True),
        })
        reporter, renderer = make_reporter()

        assert UnitStatus().condition(env) == (False, "")
        UnitStatus().run(env, reporter)

        assert reporter.error_count == 1
        assert "systemctl start docker" in renderer.at(Level.ERROR)[0]
