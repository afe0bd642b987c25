"""
Host inspection
"""
import getpass
import os
import socket
from pathlib import Path

from ...core.constants import NIXOS_MARKER_PATH
from ...domain.bootstrap.models import HostFacts


def _login_name() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return str(os.geteuid())


def inspect_host(marker_path: Path = Path(NIXOS_MARKER_PATH)) -> HostFacts:
    """Gather the facts preflight checks need, once, from the running process"""
    return HostFacts(
        marker_present=marker_path.exists(),
        euid=os.geteuid(),
        hostname=socket.gethostname(),
        user=_login_name(),
    )
