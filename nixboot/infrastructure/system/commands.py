"""
External tool adapters: nixos-rebuild, systemctl and tailscale
"""
import json
from typing import Dict, Any, List, Optional, Sequence

from ...core.constants import (
    DEFAULT_REBUILD_ACTION,
    DEFAULT_SUDO_COMMAND,
    REBUILD_COMMAND,
    SYSTEMCTL_COMMAND,
    TAILSCALE_COMMAND,
)
from ...core.interfaces import (
    CommandResult,
    CommandRunner,
    NetworkAgent,
    Rebuilder,
    ServiceManager,
)
from ...core.logging import get_logger

logger = get_logger(__name__)


class _PrivilegedCommand:
    """Prefixes every command with the privilege escalation command"""

    def __init__(self, runner: CommandRunner, sudo: Optional[Sequence[str]] = None):
        self.runner = runner
        self.sudo: List[str] = list(DEFAULT_SUDO_COMMAND if sudo is None else sudo)

    def _argv(self, *args: str) -> List[str]:
        return [*self.sudo, *args]


class NixosRebuilder(_PrivilegedCommand, Rebuilder):
    """`sudo nixos-rebuild <action>` with output passed through to the terminal"""

    def __init__(
        self,
        runner: CommandRunner,
        sudo: Optional[Sequence[str]] = None,
        action: str = DEFAULT_REBUILD_ACTION,
    ):
        super().__init__(runner, sudo)
        self.action = action

    def rebuild(self) -> CommandResult:
        return self.runner.run(self._argv(REBUILD_COMMAND, self.action), capture=False)


class SystemdServiceManager(_PrivilegedCommand, ServiceManager):
    """`sudo systemctl enable --now <unit>`"""

    def enable_now(self, unit: str) -> CommandResult:
        return self.runner.run(self._argv(SYSTEMCTL_COMMAND, "enable", "--now", unit))


class TailscaleAgent(_PrivilegedCommand, NetworkAgent):
    """Tailscale CLI"""

    def up(self, ssh: bool = True, reset: bool = True) -> CommandResult:
        args = [TAILSCALE_COMMAND, "up"]
        if ssh:
            args.append("--ssh")
        if reset:
            args.append("--reset")
        return self.runner.run(self._argv(*args), merge_stderr=True)

    def status_json(self) -> Optional[Dict[str, Any]]:
        result = self.runner.run(self._argv(TAILSCALE_COMMAND, "status", "--json"))
        if not result.ok:
            logger.debug(f"tailscale status failed: {result.stderr.strip()}")
            return None
        try:
            return json.loads(result.stdout)
        except json.JSONDecodeError:
            logger.debug("tailscale status returned invalid JSON")
            return None

    def ip4(self) -> Optional[str]:
        result = self.runner.run(self._argv(TAILSCALE_COMMAND, "ip", "-4"))
        if not result.ok:
            return None
        lines = result.stdout.strip().splitlines()
        return lines[0].strip() if lines else None
