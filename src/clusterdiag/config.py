"""Environment configuration loader for clusterdiag"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional

from rich.console import Console
from rich.table import Table

from .paths import get_real_user_home

logger = logging.getLogger(__name__)

# Default configuration values
DEFAULTS = {
    # Reporting
    'CLUSTERDIAG_LOG_LEVEL': '2',
    'CLUSTERDIAG_OUTPUT': 'text',

    # External command limits (seconds)
    'CLUSTERDIAG_COMMAND_TIMEOUT': '10',
    'CLUSTERDIAG_JOURNAL_TIMEOUT': '60',

    # Internal logging
    'CLUSTERDIAG_DEBUG_LOG': '',
}

ENV_FILE_NAME = '.clusterdiag.env'


def find_env_file() -> Optional[Path]:
    """Find the env file in standard locations"""
    # Check locations in order of priority
    search_paths = [
        Path.cwd() / ENV_FILE_NAME,
        get_real_user_home() / ENV_FILE_NAME,
        Path('/etc/clusterdiag/clusterdiag.env'),
    ]

    for path in search_paths:
        if path.is_file():
            return path

    return None


def load_env_file(env_path: Optional[Path] = None) -> Dict[str, str]:
    """Load KEY=VALUE settings from an env file into os.environ

    Variables already present in the environment win over the file.

    Args:
        env_path: Optional path to the file. If None, auto-discovers.

    Returns:
        Dictionary of the settings that were applied
    """
    loaded_vars = {}

    if env_path is None:
        env_path = find_env_file()

    if env_path is None or not env_path.is_file():
        return loaded_vars

    try:
        with open(env_path, 'r') as f:
            for line in f:
                line = line.strip()

                # Skip empty lines and comments
                if not line or line.startswith('#') or '=' not in line:
                    continue

                key, _, value = line.partition('=')
                key = key.strip()
                value = value.strip()

                # Remove quotes if present
                if value and value[0] in ('"', "'") and value[-1] == value[0]:
                    value = value[1:-1]

                if key and key not in os.environ:
                    loaded_vars[key] = value
                    os.environ[key] = value
    except OSError as e:
        logger.warning(f"Could not load env file {env_path}: {e}")

    if loaded_vars:
        logger.info(f"Loaded {len(loaded_vars)} setting(s) from {env_path}")
    return loaded_vars


def get_config(key: str, default: Optional[str] = None) -> str:
    """Get configuration value

    Priority:
    1. Environment variable
    2. Provided default
    3. Built-in default
    """
    value = os.environ.get(key)
    if value is not None:
        return value
    if default is not None:
        return default
    return DEFAULTS.get(key, '')


def get_config_bool(key: str, default: bool = False) -> bool:
    """Get boolean configuration value"""
    value = get_config(key, str(default).lower())
    return value.lower() in ('true', 'yes', '1', 'on')


def get_config_int(key: str, default: Optional[int] = None) -> int:
    """Get integer configuration value, falling back when unparsable"""
    try:
        return int(get_config(key, None if default is None else str(default)))
    except ValueError:
        logger.warning(f"Ignoring non-integer {key}={os.environ.get(key)!r}")
        if default is not None:
            return default
        return int(DEFAULTS[key])


def show_config_summary(console: Optional[Console] = None):
    """Display the effective configuration"""
    console = console or Console()
    table = Table(title="clusterdiag configuration", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_column("Source", style="yellow")

    for key in sorted(DEFAULTS):
        env_value = os.environ.get(key)
        if env_value is not None:
            table.add_row(key, env_value, "environment")
        else:
            table.add_row(key, DEFAULTS[key], "default")

    console.print(table)
