"""
Preflight checks, run before anything on the host is changed
"""
from ...core.exceptions import PrivilegeError, UnsupportedHostError
from .models import HostFacts


def check_preflight(facts: HostFacts) -> None:
    """
    Raises:
        UnsupportedHostError: If the host is not NixOS
        PrivilegeError: If the process runs as root
    """
    if not facts.marker_present:
        raise UnsupportedHostError("This script must be run on NixOS")
    if facts.is_root:
        raise PrivilegeError(
            "This script should not be run as root. "
            "Run as a regular user with sudo access."
        )
