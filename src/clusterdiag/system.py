"""System utilities for OS detection and running external commands"""

import logging
import os
import platform
import shutil
import subprocess

import distro

from .config import get_config_int

logger = logging.getLogger(__name__)


def get_os_name():
    """Lowercase OS family, e.g. "linux", "darwin", "windows"."""
    return platform.system().lower()


def get_distro_name():
    """Human-readable Linux distribution name, or '' elsewhere"""
    if get_os_name() != 'linux':
        return ''
    return distro.name(pretty=True) or 'Unknown Linux'


def has_systemd():
    """systemctl is on the PATH of a Linux host"""
    return get_os_name() == 'linux' and shutil.which('systemctl') is not None


def has_bash():
    return get_os_name() == 'linux' and os.access('/bin/bash', os.X_OK)


def command_timeout():
    """Default timeout in seconds for short external commands"""
    return get_config_int('CLUSTERDIAG_COMMAND_TIMEOUT')


def run_command(command, timeout=None):
    """Run a command (argument list) and return a result dict

    Never raises for process-level failures; the caller decides how to
    report them from the returned fields:
        returncode, stdout, stderr, success, timed_out, error
    """
    if timeout is None:
        timeout = command_timeout()
    logger.debug(f"Running {command} (timeout {timeout}s)")

    try:
        result = subprocess.run(
            command,
            capture_output=True,
            text=True,
            errors='replace',
            timeout=timeout
        )

        return {
            'returncode': result.returncode,
            'stdout': result.stdout,
            'stderr': result.stderr,
            'success': result.returncode == 0,
            'timed_out': False,
            'error': None,
        }
    except subprocess.TimeoutExpired:
        logger.warning(f"Command timed out after {timeout}s: {command}")
        return {
            'returncode': -1,
            'stdout': '',
            'stderr': f'Command timed out after {timeout} seconds',
            'success': False,
            'timed_out': True,
            'error': f'timed out after {timeout} seconds',
        }
    except OSError as e:
        return {
            'returncode': -1,
            'stdout': '',
            'stderr': str(e),
            'success': False,
            'timed_out': False,
            'error': f'({type(e).__name__}) {e}',
        }


def limit_lines(text, max_lines):
    """Keep the first max_lines lines of text, marking any cut"""
    lines = text.splitlines()
    if len(lines) <= max_lines:
        return text
    return "\n".join(lines[:max_lines] + ["..."])
