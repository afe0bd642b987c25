"""
Unified exception definitions
"""
from typing import Optional, Sequence


class BootstrapError(Exception):
    """Base exception class"""
    pass


class ConfigError(BootstrapError):
    """Configuration error"""
    pass


class UnsupportedHostError(BootstrapError):
    """Host is not a NixOS machine"""
    pass


class PrivilegeError(BootstrapError):
    """Process runs with the wrong privilege level"""
    pass


class DocumentError(BootstrapError):
    """Configuration document error"""
    pass


class MalformedDocumentError(DocumentError):
    """Configuration document cannot be patched safely"""
    pass


class DocumentIOError(DocumentError):
    """Configuration document cannot be read or written"""
    pass


class ExternalCommandError(BootstrapError):
    """External command failed or could not be started"""

    def __init__(
        self,
        message: str,
        args: Optional[Sequence[str]] = None,
        returncode: Optional[int] = None,
        output: str = "",
    ):
        super().__init__(message)
        self.command = list(args) if args else []
        self.returncode = returncode
        self.output = output
