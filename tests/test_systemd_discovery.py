"""
Tests for systemd unit discovery.

Run: python3 -m pytest tests/test_systemd_discovery.py -v
"""

import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from clusterdiag.discovery.systemd import (
    discover_units,
    parse_systemctl_show,
    probe_unit,
    unit_state_from_attrs,
)
from clusterdiag.models import Level
from clusterdiag.render import CollectingRenderer
from clusterdiag.reporter import Reporter

DOCKER_SHOW = """\
Id=docker.service
Names=docker.service
LoadState=loaded
ActiveState=failed
UnitFileState=enabled
StatusErrno=1
ExecStart={ path=/usr/bin/docker ; argv[]=/usr/bin/docker -d $OPTIONS }
"""

MISSING_SHOW = """\
Id=etcd.service
LoadState=not-found
ActiveState=inactive
UnitFileState=
"""


def ok(stdout):
    return {'returncode': 0, 'stdout': stdout, 'stderr': '', 'success': True,
            'timed_out': False, 'error': None}


def make_reporter():
    renderer = CollectingRenderer()
    return Reporter(renderer, threshold=Level.DEBUG), renderer


class TestParseShow:
    """Tests for parse_systemctl_show()"""

    def test_key_values(self):
        attrs = parse_systemctl_show(DOCKER_SHOW)
        assert attrs["LoadState"] == "loaded"
        assert attrs["UnitFileState"] == "enabled"
        # only the first '=' splits
        assert attrs["ExecStart"].startswith("{ path=/usr/bin/docker")

    def test_ignores_lines_without_equals(self):
        assert parse_systemctl_show("garbage\nA=1\n") == {"A": "1"}


class TestUnitState:
    """Tests for unit_state_from_attrs()"""

    def test_loaded_unit(self):
        state = unit_state_from_attrs("docker", parse_systemctl_show(DOCKER_SHOW))
        assert state.exists
        assert state.enabled
        assert not state.active
        assert state.exit_status == 1

    def test_not_found_unit(self):
        reporter, renderer = make_reporter()
        state = unit_state_from_attrs("etcd", parse_systemctl_show(MISSING_SHOW), reporter)
        assert not state.exists
        assert not state.enabled
        assert "does not exist" in renderer.at(Level.DEBUG)[0]

    def test_bad_exit_status(self):
        attrs = {"LoadState": "loaded", "ActiveState": "active", "StatusErrno": "n/a"}
        assert unit_state_from_attrs("x", attrs).exit_status == 0


class TestProbeUnit:
    """Tests for probe_unit() with a mocked systemctl."""

    @patch('clusterdiag.discovery.systemd.run_command')
    def test_probe(self, mock_run):
        mock_run.return_value = ok(DOCKER_SHOW)
        reporter, _ = make_reporter()

        state = probe_unit("docker", reporter, timeout=3)

        mock_run.assert_called_once_with(["systemctl", "show", "docker"], timeout=3)
        assert state.exists and state.enabled

    @patch('clusterdiag.discovery.systemd.run_command')
    def test_probe_failure(self, mock_run):
        mock_run.return_value = {'returncode': -1, 'stdout': '', 'stderr': '', 'success': False,
                                 'timed_out': True, 'error': 'timed out after 10 seconds'}
        reporter, renderer = make_reporter()

        state = probe_unit("docker", reporter)

        assert not state.exists
        assert renderer.at(Level.ERROR) == [
            "Error running `systemctl show docker`: timed out after 10 seconds\n"
            "Cannot analyze systemd units."
        ]

    @patch('clusterdiag.discovery.systemd.run_command')
    def test_discover_units(self, mock_run):
        mock_run.side_effect = lambda command, timeout=None: ok(
            DOCKER_SHOW if command[-1] == "docker" else MISSING_SHOW)
        reporter, renderer = make_reporter()

        units = discover_units(reporter, ["docker", "etcd"])

        assert set(units) == {"docker", "etcd"}
        assert units["docker"].exists
        assert not units["etcd"].exists
        assert "Saw systemd unit docker" in renderer.at(Level.DEBUG)
