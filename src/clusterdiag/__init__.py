"""
clusterdiag - health checks for a cluster platform host

Inspects locally discovered facts (installed binaries, client
configuration, systemd unit state, unit journals) and reports
actionable findings.

Usage:
    from clusterdiag import Reporter, default_registry, run_discovery

    reporter = Reporter()
    env = run_discovery(reporter)
    default_registry().run_all(env, reporter)
    reporter.summary()
    reporter.finish()
"""

from .__version__ import __version__
from .models import (
    Level,
    Version,
    ServiceState,
    ClientConfig,
    Environment,
)
from .reporter import Reporter
from .registry import Diagnostic, DiagnosticRegistry, default_registry
from .log_matcher import LogMatcher, UnitSpec, ScanContext, ScanOutcome
from .discovery import DiscoveryOptions, run_discovery

__all__ = [
    '__version__',
    'Level',
    'Version',
    'ServiceState',
    'ClientConfig',
    'Environment',
    'Reporter',
    'Diagnostic',
    'DiagnosticRegistry',
    'default_registry',
    'LogMatcher',
    'UnitSpec',
    'ScanContext',
    'ScanOutcome',
    'DiscoveryOptions',
    'run_discovery',
]
