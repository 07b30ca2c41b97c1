"""
Tests for the clusterdiag command line.

Run: python3 -m pytest tests/test_cli.py -v
"""

import json
import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent / 'src'))

from clusterdiag import cli
from clusterdiag.console import reset_console
from clusterdiag.models import Environment
from clusterdiag.registry import Diagnostic, DiagnosticRegistry


class Warns(Diagnostic):
    name = "Warns"
    description = "always warns"

    def run(self, env, reporter):
        reporter.warn("something looks off")


class Interrupts(Diagnostic):
    name = "Interrupts"
    description = "simulates Ctrl-C"

    def run(self, env, reporter):
        raise KeyboardInterrupt


def registry_with(*diagnostics):
    registry = DiagnosticRegistry()
    registry.register_all("test", diagnostics)
    return registry


@pytest.fixture(autouse=True)
def quiet_setup(monkeypatch):
    """Keep the host's env file and logging setup out of CLI tests."""
    monkeypatch.delenv('CLUSTERDIAG_OUTPUT', raising=False)
    monkeypatch.delenv('CLUSTERDIAG_LOG_LEVEL', raising=False)
    reset_console()
    with patch('clusterdiag.cli.load_env_file'), patch('clusterdiag.cli.setup_logging'):
        yield
    reset_console()


class TestSplitList:
    def test_commas_and_repeats(self):
        assert cli.split_list(["a.X,b.Y", " c.Z ", ""]) == ["a.X", "b.Y", "c.Z"]

    def test_none(self):
        assert cli.split_list(None) == []


class TestParser:
    """Tests for argument parsing."""

    def test_defaults(self):
        args = cli.build_parser().parse_args([])
        assert args.loglevel == 2
        assert args.output == 'text'
        assert args.diagnostics is None

    def test_defaults_from_environment(self, monkeypatch):
        monkeypatch.setenv('CLUSTERDIAG_LOG_LEVEL', '3')
        monkeypatch.setenv('CLUSTERDIAG_OUTPUT', 'yaml')
        args = cli.build_parser().parse_args([])
        assert args.loglevel == 3
        assert args.output == 'yaml'

    def test_bad_loglevel(self):
        with pytest.raises(SystemExit) as exc_info:
            cli.build_parser().parse_args(['-l', '7'])
        assert exc_info.value.code == 2


class TestMain:
    """Tests for main()"""

    def test_list(self, capsys):
        assert cli.main(['--list']) == 0
        out = capsys.readouterr().out.splitlines()
        assert "client.ContactMaster" in out
        assert "systemd.AnalyzeLogs" in out

    @patch('clusterdiag.cli.run_discovery', return_value=Environment())
    def test_json_run(self, mock_discovery, capsys):
        with patch('clusterdiag.cli.default_registry', return_value=registry_with(Warns())):
            code = cli.main(['-o', 'json', '--osc', '/opt/bin/osc'])

        assert code == 0
        options = mock_discovery.call_args.args[1]
        assert options.client_path == '/opt/bin/osc'

        messages = json.loads(capsys.readouterr().out)
        assert {"message": "something looks off", "level": "warn"} in messages
        assert messages[-1] == {"message": "Errors seen: 0\nWarnings seen: 1", "level": "notice"}

    @patch('clusterdiag.cli.run_discovery', return_value=Environment())
    def test_selected_diagnostics(self, mock_discovery, capsys):
        registry = registry_with(Warns())
        with patch('clusterdiag.cli.default_registry', return_value=registry):
            cli.main(['-o', 'yaml', '-d', 'test.Missing', '-d', 'test.Warns'])

        out = capsys.readouterr().out
        assert 'There is no such diagnostic "test.Missing"' in out
        assert 'something looks off' in out

    @patch('clusterdiag.cli.run_discovery', return_value=Environment())
    def test_error_level_hides_summary(self, mock_discovery, capsys):
        with patch('clusterdiag.cli.default_registry', return_value=registry_with(Warns())):
            cli.main(['-o', 'json', '-l', '0'])

        assert json.loads(capsys.readouterr().out) == []

    @patch('clusterdiag.cli.run_discovery', return_value=Environment())
    def test_interrupt(self, mock_discovery, capsys):
        with patch('clusterdiag.cli.default_registry', return_value=registry_with(Interrupts())):
            code = cli.main(['-o', 'json'])

        assert code == 130
        # the JSON array is still closed
        messages = json.loads(capsys.readouterr().out)
        assert messages[-1]["message"] == "Interrupted"
