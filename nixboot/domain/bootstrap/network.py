"""
Mesh network helpers
"""
import re
from typing import Optional

from ...core.constants import AUTH_URL_PATTERN
from ...core.interfaces import NetworkAgent
from ...core.logging import get_logger
from .models import ConnectionInfo

logger = get_logger(__name__)

_AUTH_URL_RE = re.compile(AUTH_URL_PATTERN)


def extract_auth_url(output: str) -> Optional[str]:
    """Return the first login URL in `tailscale up` output, if any"""
    m = _AUTH_URL_RE.search(output)
    return m.group(0) if m else None


def query_connection(agent: NetworkAgent, hostname: str, user: str) -> Optional[ConnectionInfo]:
    """
    Collect connection details once the agent reports a status.

    Returns:
        ConnectionInfo (ip is None while no address is assigned), or None
        when the agent has no status at all
    """
    status = agent.status_json()
    if status is None:
        logger.info("No network status available yet")
        return None

    logger.debug(f"Backend state: {status.get('BackendState', 'unknown')}")
    return ConnectionInfo(ip=agent.ip4(), hostname=hostname, user=user)
