"""
clusterdiag Path Constants

Centralized path definitions for client configuration lookup.

IMPORTANT: Always use get_real_user_home() instead of Path.home() when
the path should be in the user's home directory. Diagnostics are often
run with sudo (journalctl and systemctl need it), and the client config
we want is the invoking user's, not root's.
"""

from pathlib import Path
import os


def get_real_user_home() -> Path:
    """
    Get the real user's home directory, even when running as root via sudo.

    Returns:
        Path to the real user's home directory
    """
    sudo_user = os.environ.get('SUDO_USER')
    if sudo_user and sudo_user != 'root':
        return Path(f'/home/{sudo_user}')

    return Path.home()


class ClientConfigPaths:
    """Where the client config (kubeconfig) is looked for"""

    ENV_VAR = 'KUBECONFIG'
    LOCAL_NAME = '.kubeconfig'

    # Written by the master on first start; usable but not a standard location
    ADMIN_CONFIGS = (
        Path('/var/lib/openshift/openshift.local.certificates/admin/.kubeconfig'),
        Path('/openshift.local.certificates/admin/.kubeconfig'),
    )

    @classmethod
    def standard_locations(cls):
        """Implicit search order: current directory, then the user's home"""
        return [
            Path.cwd() / cls.LOCAL_NAME,
            get_real_user_home() / '.kube' / 'config',
        ]
