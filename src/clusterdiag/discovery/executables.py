"""
Executable discovery.

Finds the client and server binaries (by explicit path or on PATH) and
asks each for its version.
"""

import os
import shutil
from pathlib import Path
from typing import Optional

from ..models import Version
from ..reporter import Reporter
from ..system import get_os_name, limit_lines, run_command

CLIENT_BINARY = "osc"
SERVER_BINARY = "openshift"


def find_exec_for(cmd: str) -> str:
    """Look for an executable on PATH (with .exe on Windows)."""
    path = shutil.which(cmd)
    if path:
        return path
    if get_os_name() == "windows":
        return shutil.which(cmd + ".exe") or ""
    return ""


def find_exec_and_log(cmd: str, reporter: Reporter, path_flag: str = "") -> str:
    """
    Locate `cmd`, reporting what was found.

    An explicit path must carry the expected file name and be executable;
    otherwise PATH is searched.

    Returns:
        The executable's path, or '' if it is unusable or missing
    """
    if path_flag:
        if Path(path_flag).name not in (cmd, cmd + ".exe"):
            reporter.error(f"You specified that '{cmd}' should be found at:\n  {path_flag}\n"
                           f"but that file has the wrong name. The file name determines "
                           f"available functionality and must match.")
        elif os.path.isfile(path_flag) and os.access(path_flag, os.X_OK):
            reporter.info(f"Specified '{cmd}' is executable at {path_flag}")
            return path_flag
        elif not os.path.exists(path_flag):
            reporter.error(f"You specified that '{cmd}' should be at {path_flag}\n"
                           f"but that file does not exist.")
        else:
            reporter.error(f"You specified that '{cmd}' should be at {path_flag}\n"
                           f"but that file is not executable.")
        return ""

    path = find_exec_for(cmd)
    if not path:
        reporter.warn(f"No '{cmd}' executable was found in your path")
        return ""
    reporter.info(f"Found '{cmd}' at {path}")
    return path


def get_exec_version(path: str, reporter: Reporter, timeout: Optional[float] = None) -> Version:
    """Run `<path> version` and parse `<name> vX.Y.Z` from the first line."""
    result = run_command([path, "version"], timeout=timeout)
    output = (result['stdout'] + result['stderr']).strip()

    if result['timed_out']:
        reporter.error(f"Executed '{path} version' but it did not finish: {result['error']}")
        return Version()
    if result['error']:
        reporter.error(f"Error in executing '{path} version': {result['error']}")
        return Version()
    if not result['success']:
        reporter.error(f"Executed '{path} version' which exited with an error code.\n"
                       f"This version is likely old or broken.\n"
                       f"Exit status was {result['returncode']};\n"
                       f"Output was:\n{limit_lines(output, 5)}")
        return Version()

    parsed = Version.parse(output)
    if parsed is None:
        reporter.error(f"Expected version output from '{path} version'\n"
                       f"Could not parse output received:\n{limit_lines(output, 5)}")
        return Version()

    name, version = parsed
    reporter.info(f"version of {name} is {version}")
    return version
