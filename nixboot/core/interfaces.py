"""
Core interfaces for dependency injection
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Any, List, Optional, Sequence


@dataclass
class CommandResult:
    """Outcome of an external command"""
    args: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout and stderr text"""
        return self.stdout + self.stderr


class CommandRunner(ABC):
    """External process runner interface"""

    @abstractmethod
    def run(
        self,
        args: Sequence[str],
        capture: bool = True,
        merge_stderr: bool = False,
        input_text: Optional[str] = None,
    ) -> CommandResult:
        """
        Run a command to completion.

        Raises ExternalCommandError if the executable cannot be started.
        A non-zero exit code is reported in the result, not raised.
        """
        pass


class DocumentStore(ABC):
    """Access to configuration files"""

    @abstractmethod
    def exists(self, path: Path) -> bool:
        """Check if file exists"""
        pass

    @abstractmethod
    def read(self, path: Path) -> str:
        """Read file text"""
        pass

    @abstractmethod
    def write(self, path: Path, text: str) -> None:
        """Replace file content atomically"""
        pass

    @abstractmethod
    def copy_into(self, path: Path, directory: Path) -> Path:
        """Copy file into directory, return the copy's path"""
        pass


class Rebuilder(ABC):
    """System rebuild interface"""

    @abstractmethod
    def rebuild(self) -> CommandResult:
        """Rebuild and activate the system configuration"""
        pass


class ServiceManager(ABC):
    """System service manager interface"""

    @abstractmethod
    def enable_now(self, unit: str) -> CommandResult:
        """Enable and start a service"""
        pass


class NetworkAgent(ABC):
    """Mesh VPN client interface"""

    @abstractmethod
    def up(self, ssh: bool = True, reset: bool = True) -> CommandResult:
        """Bring the interface up, output includes the auth URL if one is needed"""
        pass

    @abstractmethod
    def status_json(self) -> Optional[Dict[str, Any]]:
        """Return parsed status, or None if no status is available"""
        pass

    @abstractmethod
    def ip4(self) -> Optional[str]:
        """Return the IPv4 address on the mesh, or None"""
        pass


class PromptProvider(ABC):
    """User prompt interface"""

    @abstractmethod
    def pause(self, message: str) -> None:
        """Wait for the user to press Enter"""
        pass
