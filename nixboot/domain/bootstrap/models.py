"""
Bootstrap domain models
"""
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ...core.constants import (
    CONFIGURATION_PATH,
    DEFAULT_REBUILD_ACTION,
    DEFAULT_SETTLE_SECONDS,
    DEFAULT_SUDO_COMMAND,
    DEFAULT_VPN_SERVICE,
    FRAGMENT_PATH,
    NIXOS_MARKER_PATH,
    ROOT_UID,
)
from ...core.exceptions import ConfigError
from ..patcher.models import PatchOutcome


@dataclass(frozen=True)
class HostFacts:
    """Facts about the running host, gathered once per run"""
    marker_present: bool
    euid: int
    hostname: str
    user: str

    @property
    def is_root(self) -> bool:
        return self.euid == ROOT_UID


@dataclass(frozen=True)
class BackupRecord:
    """Timestamped backup of the configuration document, restored by hand"""
    directory: Path
    created_at: datetime
    snapshot: Optional[Path] = None


@dataclass(frozen=True)
class ConnectionInfo:
    """How to reach this machine over the mesh network"""
    ip: Optional[str]
    hostname: str
    user: str

    @property
    def has_ip(self) -> bool:
        return self.ip is not None


@dataclass
class NetworkReport:
    """Result of the network bring-up step"""
    service_started: bool = False
    auth_url: Optional[str] = None
    connection: Optional[ConnectionInfo] = None


@dataclass
class BootstrapReport:
    """Everything a completed run did"""
    backup: BackupRecord
    fragment_path: Path
    patch_outcome: PatchOutcome
    network: NetworkReport = field(default_factory=NetworkReport)


def _as_bool(section: Dict[str, Any], key: str, default: bool) -> bool:
    value = section.get(key, default)
    if not isinstance(value, bool):
        raise ConfigError(f"'{key}' must be true or false, got {value!r}")
    return value


def _as_path(section: Dict[str, Any], key: str, default: Path) -> Path:
    value = section.get(key)
    if value is None:
        return default
    if not isinstance(value, (str, Path)):
        raise ConfigError(f"'{key}' must be a path, got {value!r}")
    return Path(value).expanduser()


@dataclass
class BootstrapSettings:
    """Run settings, see BootstrapSettings.from_dict for the file layout"""
    configuration_path: Path = Path(CONFIGURATION_PATH)
    fragment_path: Path = Path(FRAGMENT_PATH)
    marker_path: Path = Path(NIXOS_MARKER_PATH)
    backup_root: Path = field(default_factory=lambda: Path(tempfile.gettempdir()))

    sudo: List[str] = field(default_factory=lambda: list(DEFAULT_SUDO_COMMAND))
    rebuild_action: str = DEFAULT_REBUILD_ACTION

    vpn_service: str = DEFAULT_VPN_SERVICE
    ssh: bool = True
    reset: bool = True
    wait_for_auth: bool = True
    settle_seconds: float = DEFAULT_SETTLE_SECONDS

    @property
    def fragment_reference(self) -> str:
        """Import entry for the fragment, relative to the configuration document"""
        if self.fragment_path.parent == self.configuration_path.parent:
            return f"./{self.fragment_path.name}"
        return str(self.fragment_path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BootstrapSettings":
        """
        Create from a merged configuration dictionary.

        Layout:
            [paths]     configuration, fragment, marker, backup_root
            [commands]  sudo (list of strings), rebuild_action
            [network]   service, ssh, reset, wait_for_auth, settle_seconds

        Raises:
            ConfigError: If a value has the wrong type
        """
        defaults = cls()
        paths = data.get("paths", {}) or {}
        commands = data.get("commands", {}) or {}
        network = data.get("network", {}) or {}

        sudo = commands.get("sudo", defaults.sudo)
        if isinstance(sudo, str):
            sudo = sudo.split()
        if not isinstance(sudo, list) or not all(isinstance(s, str) for s in sudo):
            raise ConfigError(f"'sudo' must be a list of strings, got {sudo!r}")

        settle = network.get("settle_seconds", defaults.settle_seconds)
        if isinstance(settle, bool) or not isinstance(settle, (int, float)) or settle < 0:
            raise ConfigError(f"'settle_seconds' must be a non-negative number, got {settle!r}")

        return cls(
            configuration_path=_as_path(paths, "configuration", defaults.configuration_path),
            fragment_path=_as_path(paths, "fragment", defaults.fragment_path),
            marker_path=_as_path(paths, "marker", defaults.marker_path),
            backup_root=_as_path(paths, "backup_root", defaults.backup_root),
            sudo=sudo,
            rebuild_action=str(commands.get("rebuild_action", defaults.rebuild_action)),
            vpn_service=str(network.get("service", defaults.vpn_service)),
            ssh=_as_bool(network, "ssh", defaults.ssh),
            reset=_as_bool(network, "reset", defaults.reset),
            wait_for_auth=_as_bool(network, "wait_for_auth", defaults.wait_for_auth),
            settle_seconds=float(settle),
        )
