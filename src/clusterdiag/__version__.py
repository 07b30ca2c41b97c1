"""Version information for clusterdiag"""

__version__ = "0.3.0"
__version_info__ = (0, 3, 0)
__release_date__ = "2026-10-19"
