"""
Bootstrap domain module
"""
from .models import (
    HostFacts,
    BackupRecord,
    ConnectionInfo,
    NetworkReport,
    BootstrapReport,
    BootstrapSettings,
)
from .preflight import check_preflight
from .backup import create_backup
from .fragment import FRAGMENT_TEMPLATE, write_fragment
from .network import extract_auth_url, query_connection
from .service import BootstrapService

__all__ = [
    "HostFacts",
    "BackupRecord",
    "ConnectionInfo",
    "NetworkReport",
    "BootstrapReport",
    "BootstrapSettings",
    "check_preflight",
    "create_backup",
    "FRAGMENT_TEMPLATE",
    "write_fragment",
    "extract_auth_url",
    "query_connection",
    "BootstrapService",
]
