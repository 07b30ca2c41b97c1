#!/usr/bin/env python3
"""clusterdiag command line

Runs discovery, then every diagnostic (or the ones named with -d), then
prints a summary of warnings and errors seen.

Usage:
    clusterdiag
    clusterdiag -d systemd.AnalyzeLogs,systemd.UnitStatus -l 3
    sudo clusterdiag -o json     # journal access usually needs root
"""

import argparse
import logging
from typing import List, Optional

from .__version__ import __version__
from .config import get_config, get_config_int, load_env_file, show_config_summary
from .console import get_console
from .discovery import DiscoveryOptions, run_discovery
from .logging_config import setup_logging
from .models import Level
from .registry import default_registry
from .render import RENDERERS, TextRenderer, get_renderer
from .reporter import Reporter

logger = logging.getLogger(__name__)


def split_list(values: Optional[List[str]]) -> List[str]:
    """Flatten repeated, comma-separated -d values into diagnostic tokens."""
    tokens = []
    for value in values or []:
        tokens.extend(part.strip() for part in value.split(",") if part.strip())
    return tokens


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='clusterdiag',
        description='Understand and troubleshoot a cluster platform host',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                          Run every diagnostic
  %(prog)s -d systemd.AnalyzeLogs   Run only the journal analysis
  %(prog)s -l 3 -o yaml             Debug-level output as YAML
  %(prog)s --list                   Show available diagnostics
        """
    )
    parser.add_argument('-d', '--diagnostics', action='append', metavar='AREA.NAME[,...]',
                        help='comma-separated list of diagnostic names to run, '
                             'e.g. "systemd.AnalyzeLogs" (may be repeated)')
    parser.add_argument('-l', '--loglevel', type=int, choices=range(0, 4),
                        default=get_config_int('CLUSTERDIAG_LOG_LEVEL'),
                        help='level of output: 0 = Error, 1 = Warn, 2 = Info, 3 = Debug')
    parser.add_argument('-o', '--output', choices=sorted(RENDERERS),
                        default=get_config('CLUSTERDIAG_OUTPUT'),
                        help='output format (default: text)')
    parser.add_argument('--openshift', default='', metavar='PATH',
                        help="path to the 'openshift' server binary")
    parser.add_argument('--osc', default='', metavar='PATH',
                        help="path to the 'osc' client binary")
    parser.add_argument('-c', '--config', default='', metavar='PATH',
                        help='path to the client config (kubeconfig) file')
    parser.add_argument('--timeout', type=float, default=None, metavar='SECONDS',
                        help='timeout for short external commands')
    parser.add_argument('--log-file', default=get_config('CLUSTERDIAG_DEBUG_LOG'), metavar='PATH',
                        help='write internal debug logging to this file')
    parser.add_argument('--list', action='store_true',
                        help='list available diagnostics and exit')
    parser.add_argument('--show-config', action='store_true',
                        help='show effective configuration and exit')
    parser.add_argument('--version', action='version',
                        version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point; returns the process exit code."""
    load_env_file()
    args = build_parser().parse_args(argv)
    setup_logging(log_file=args.log_file or None)

    if args.show_config:
        show_config_summary(get_console())
        return 0

    registry = default_registry()
    if args.list:
        for ident in registry.identifiers():
            get_console().print(ident)
        return 0

    try:
        renderer = get_renderer(args.output)
    except ValueError as e:
        logger.warning(f"{e}; using text output")
        renderer = TextRenderer()

    reporter = Reporter(renderer, Level.from_rank(args.loglevel))
    options = DiscoveryOptions(
        client_path=args.osc,
        server_path=args.openshift,
        config_path=args.config,
        command_timeout=args.timeout,
    )

    try:
        env = run_discovery(reporter, options)
        registry.run_all(env, reporter, split_list(args.diagnostics))
        reporter.summary()
    except KeyboardInterrupt:
        reporter.notice("Interrupted")
        return 130
    finally:
        reporter.finish()

    # Findings do not change the exit code; only invocation problems do
    return 0


if __name__ == '__main__':
    raise SystemExit(main())
