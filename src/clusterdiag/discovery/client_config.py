"""
Client configuration (kubeconfig) discovery.

We do not merge several files the way the real client can; most users
have a single kubeconfig. The file is looked for in the standard
places, and the user is told what was found along the way.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import yaml

from ..models import ClientConfig
from ..paths import ClientConfigPaths
from ..reporter import Reporter

ADMIN_CONFIG_ADVICE = """\
A client config was not available where expected; however, one exists at
  {path}
which is a standard location where the master generates it.
If this is what you want, you should copy it to a standard location
(your home directory, or the current directory), or you can set the
environment variable KUBECONFIG in your ~/.bash_profile:
  export KUBECONFIG={path}
If this is not what you want, you should obtain a client config and
place it in a standard location."""


def _named_entries(document: dict, key: str, inner: str) -> Dict[str, Dict[str, str]]:
    """Turn a kubeconfig list like `contexts: [{name, context: {...}}]` into a dict."""
    entries = document.get(key) or []
    if not isinstance(entries, list):
        raise ValueError(f"'{key}' should be a list, not {type(entries).__name__}")
    result = {}
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("name"):
            raise ValueError(f"every entry in '{key}' needs a name")
        body = entry.get(inner) or {}
        if not isinstance(body, dict):
            raise ValueError(f"'{key}' entry '{entry['name']}' has a malformed '{inner}'")
        result[str(entry["name"])] = {str(k): str(v) for k, v in body.items()}
    return result


def parse_client_config(text: str, path: str) -> ClientConfig:
    """
    Parse kubeconfig YAML.

    Raises:
        ValueError: the text is not valid YAML or not shaped like a kubeconfig
    """
    try:
        document = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ValueError(str(e)) from e
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise ValueError("top level should be a mapping")

    return ClientConfig(
        path=path,
        current_context=str(document.get("current-context") or ""),
        contexts=_named_entries(document, "contexts", "context"),
        clusters=_named_entries(document, "clusters", "cluster"),
        auth_infos=_named_entries(document, "users", "user"),
    )


def open_client_config(path: Path, reporter: Reporter, errmsg: str = "") -> Optional[str]:
    """
    Read the file at `path`.

    With `errmsg` set (an explicitly requested location) failures are
    errors; otherwise they are only debug noise.
    """
    try:
        text = path.read_text()
    except OSError as e:
        if not errmsg:
            reporter.debug(f"Could not read client config at {path}:\n{e}")
        elif isinstance(e, FileNotFoundError):
            reporter.error(errmsg + "but that file does not exist.")
        elif isinstance(e, PermissionError):
            reporter.error(errmsg + "but lack permission to read that file.")
        else:
            reporter.error(f"{errmsg}but there was an error opening it:\n{e}")
        return None
    reporter.info(f"Reading client config at {path}")
    return text


def find_client_config(reporter: Reporter, flag_path: str = "") -> Tuple[Optional[Path], Optional[str]]:
    """Locate and read the client config; returns (path, text) or (None, None)."""
    env_path = os.environ.get(ClientConfigPaths.ENV_VAR, "")

    # An explicit location is final even if it is missing
    if flag_path:
        path = Path(flag_path)
        return path, open_client_config(path, reporter,
                                         f"--config specified that client config should be at {path}\n")
    if env_path:
        path = Path(env_path)
        return path, open_client_config(path, reporter,
                                        f"$KUBECONFIG specified that client config should be at {path}\n")

    for path in ClientConfigPaths.standard_locations():
        text = open_client_config(path, reporter)
        if text is not None:
            return path, text

    for path in ClientConfigPaths.ADMIN_CONFIGS:
        if path.is_file():
            reporter.warn(ADMIN_CONFIG_ADVICE.format(path=path))

    return None, None


def read_client_config(reporter: Reporter, flag_path: str = "") -> Tuple[str, Optional[ClientConfig]]:
    """
    Find, read and parse the client config.

    Returns:
        (path, ClientConfig) - path is '' and config None when nothing usable was read
    """
    path, text = find_client_config(reporter, flag_path)
    if text is None:
        reporter.warn("No client config read; default configuration will be used, "
                      "which is likely not what you want.")
        return ("" if path is None else str(path)), None

    try:
        config = parse_client_config(text, str(path))
    except ValueError as e:
        reporter.error(f"Error reading YAML from client config file ({path}):\n  {e}\n"
                       f"This file may have been truncated or mis-edited.\n"
                       f"Please fix it or get a new one.")
        return str(path), None

    reporter.info(f"Successfully read a client config file at '{path}';\n"
                  f"be aware that the actual configuration used later may be different\n"
                  f"due to environment variables, flags, and other config files\n"
                  f"being merged together.")
    return str(path), config


def list_contexts(config: ClientConfig) -> List[str]:
    return sorted(config.contexts)
