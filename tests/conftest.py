"""pytest configuration and shared fixtures."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import pytest

from nixboot.core.exceptions import DocumentIOError
from nixboot.core.interfaces import (
    CommandResult,
    CommandRunner,
    DocumentStore,
    NetworkAgent,
    PromptProvider,
    Rebuilder,
    ServiceManager,
)
from nixboot.domain.bootstrap import BootstrapSettings, HostFacts

NIXOS_CONFIGURATION = """\
# Edit this configuration file to define what should be installed on
# your system. Help is available in the configuration.nix(5) man page.

{ config, pkgs, ... }:

{
  imports =
    [ # Include the results of the hardware scan.
      ./hardware-configuration.nix
    ];

  boot.loader.systemd-boot.enable = true;
  networking.hostName = "nixos";

  users.users.alice = {
    isNormalUser = true;
    extraGroups = [ "wheel" ];
  };

  system.stateVersion = "25.05";
}
"""

AUTH_OUTPUT = """
To authenticate, visit:

\thttps://login.tailscale.com/a/1a2b3c4d5e

"""

RunnerResponse = Union[Tuple[int, str, str], Exception]


class FakeRunner(CommandRunner):
    """Records commands; responses are looked up by argv prefix."""

    def __init__(self, responses: Optional[Dict[Tuple[str, ...], RunnerResponse]] = None):
        self.responses = responses or {}
        self.calls: List[Dict[str, Any]] = []

    def run(
        self,
        args: Sequence[str],
        capture: bool = True,
        merge_stderr: bool = False,
        input_text: Optional[str] = None,
    ) -> CommandResult:
        argv = list(args)
        self.calls.append({
            "args": argv,
            "capture": capture,
            "merge_stderr": merge_stderr,
            "input_text": input_text,
        })
        for prefix, response in self.responses.items():
            if tuple(argv[:len(prefix)]) == prefix:
                if isinstance(response, Exception):
                    raise response
                code, out, err = response
                return CommandResult(args=argv, returncode=code, stdout=out, stderr=err)
        return CommandResult(args=argv, returncode=0)

    @property
    def argvs(self) -> List[List[str]]:
        return [c["args"] for c in self.calls]


class FakeStore(DocumentStore):
    """In-memory document store."""

    def __init__(self, files: Optional[Dict[Path, str]] = None):
        self.files: Dict[Path, str] = dict(files or {})
        self.writes: List[Path] = []
        self.copies: List[Tuple[Path, Path]] = []

    def exists(self, path: Path) -> bool:
        return path in self.files

    def read(self, path: Path) -> str:
        if path not in self.files:
            raise DocumentIOError(f"Cannot read {path}: no such file")
        return self.files[path]

    def write(self, path: Path, text: str) -> None:
        self.files[path] = text
        self.writes.append(path)

    def copy_into(self, path: Path, directory: Path) -> Path:
        self.copies.append((path, directory))
        target = directory / path.name
        self.files[target] = self.files[path]
        return target


class FakeRebuilder(Rebuilder):
    def __init__(self, returncode: int = 0):
        self.returncode = returncode
        self.calls = 0

    def rebuild(self) -> CommandResult:
        self.calls += 1
        return CommandResult(args=["nixos-rebuild", "switch"], returncode=self.returncode)


class FakeServices(ServiceManager):
    def __init__(self, returncode: int = 0, error: Optional[Exception] = None):
        self.returncode = returncode
        self.error = error
        self.units: List[str] = []

    def enable_now(self, unit: str) -> CommandResult:
        self.units.append(unit)
        if self.error:
            raise self.error
        return CommandResult(
            args=["systemctl", "enable", "--now", unit],
            returncode=self.returncode,
            stderr="" if self.returncode == 0 else "Unit not found.",
        )


class FakeAgent(NetworkAgent):
    def __init__(
        self,
        up_output: str = AUTH_OUTPUT,
        status: Optional[Dict[str, Any]] = None,
        ip: Optional[str] = "100.101.102.103",
        up_error: Optional[Exception] = None,
    ):
        self.up_output = up_output
        self.status = {"BackendState": "Running"} if status is None else status
        self.ip = ip
        self.up_error = up_error
        self.up_calls: List[Dict[str, bool]] = []

    def up(self, ssh: bool = True, reset: bool = True) -> CommandResult:
        self.up_calls.append({"ssh": ssh, "reset": reset})
        if self.up_error:
            raise self.up_error
        return CommandResult(args=["tailscale", "up"], returncode=0, stdout=self.up_output)

    def status_json(self) -> Optional[Dict[str, Any]]:
        return self.status or None

    def ip4(self) -> Optional[str]:
        return self.ip


class FakePrompt(PromptProvider):
    def __init__(self, interrupt: bool = False):
        self.interrupt = interrupt
        self.pauses: List[str] = []

    def pause(self, message: str) -> None:
        self.pauses.append(message)
        if self.interrupt:
            raise KeyboardInterrupt


@pytest.fixture
def nixos_configuration() -> str:
    return NIXOS_CONFIGURATION


@pytest.fixture
def facts() -> HostFacts:
    return HostFacts(marker_present=True, euid=1000, hostname="nixbox", user="alice")


@pytest.fixture
def settings(tmp_path: Path) -> BootstrapSettings:
    return BootstrapSettings(backup_root=tmp_path / "backups", settle_seconds=0)


@pytest.fixture
def store(settings: BootstrapSettings) -> FakeStore:
    return FakeStore({settings.configuration_path: NIXOS_CONFIGURATION})
