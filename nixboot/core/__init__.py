"""
Core infrastructure layer
"""
from .constants import *
from .exceptions import *
from .logging import setup_logging, get_logger, get_stdout_console, get_stderr_console
from .interfaces import (
    CommandResult,
    CommandRunner,
    DocumentStore,
    Rebuilder,
    ServiceManager,
    NetworkAgent,
    PromptProvider,
)

__all__ = [
    "setup_logging",
    "get_logger",
    "get_stdout_console",
    "get_stderr_console",
    "CommandResult",
    "CommandRunner",
    "DocumentStore",
    "Rebuilder",
    "ServiceManager",
    "NetworkAgent",
    "PromptProvider",
]
