"""
System adapters
"""
from .runner import SubprocessRunner
from .commands import NixosRebuilder, SystemdServiceManager, TailscaleAgent
from .host import inspect_host

__all__ = [
    "SubprocessRunner",
    "NixosRebuilder",
    "SystemdServiceManager",
    "TailscaleAgent",
    "inspect_host",
]
