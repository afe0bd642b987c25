"""
Bootstrap domain service - business logic
"""
import time
from datetime import datetime
from typing import Callable, Optional

from ...core.exceptions import ExternalCommandError
from ...core.interfaces import (
    DocumentStore,
    NetworkAgent,
    PromptProvider,
    Rebuilder,
    ServiceManager,
)
from ...core.logging import get_logger
from ..patcher import PatchResult, apply_import
from .backup import create_backup
from .fragment import write_fragment
from .models import (
    BackupRecord,
    BootstrapReport,
    BootstrapSettings,
    ConnectionInfo,
    HostFacts,
    NetworkReport,
)
from .network import extract_auth_url, query_connection
from .preflight import check_preflight

logger = get_logger(__name__)

AUTH_PAUSE_MESSAGE = "Press Enter after completing Tailscale authentication, or Ctrl+C to skip..."


class BootstrapService:
    """
    Bootstrap service - pure business logic.

    Runs preflight, backup, fragment, import patch, rebuild and network
    bring-up in order. All host access goes through the injected
    collaborators; progress is reported through callbacks.
    """

    def __init__(
        self,
        settings: BootstrapSettings,
        store: DocumentStore,
        rebuilder: Rebuilder,
        services: ServiceManager,
        agent: NetworkAgent,
        prompt: Optional[PromptProvider] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
        on_start: Optional[Callable[[], None]] = None,
        on_backup: Optional[Callable[[BackupRecord], None]] = None,
        on_fragment_written: Optional[Callable[[str], None]] = None,
        on_patched: Optional[Callable[[PatchResult], None]] = None,
        on_rebuild: Optional[Callable[[], None]] = None,
        on_network: Optional[Callable[[str], None]] = None,
        on_auth_url: Optional[Callable[[str], None]] = None,
        on_auth_missing: Optional[Callable[[], None]] = None,
        on_connected: Optional[Callable[[ConnectionInfo], None]] = None,
        on_warning: Optional[Callable[[str], None]] = None,
        on_complete: Optional[Callable[[BootstrapReport], None]] = None,
    ):
        """
        Initialize bootstrap service.

        Args:
            settings: Paths, commands and network options
            store: Access to the configuration files
            rebuilder: System rebuild command
            services: Service manager
            agent: Mesh VPN client
            prompt: Used to wait for authentication (skipped if None)
            sleep: Delay function, replaced in tests
            clock: Timestamp source for the backup directory
            on_start: Callback before the first change
            on_backup: Callback after backup (record)
            on_fragment_written: Callback after the fragment is written (path)
            on_patched: Callback after the import patch (result)
            on_rebuild: Callback before the rebuild starts
            on_network: Callback before network bring-up (service unit)
            on_auth_url: Callback when an auth URL was found (url)
            on_auth_missing: Callback when no auth URL was found
            on_connected: Callback with connection details
            on_warning: Callback for best-effort step failures (message)
            on_complete: Callback when the run completes (report)
        """
        self.settings = settings
        self.store = store
        self.rebuilder = rebuilder
        self.services = services
        self.agent = agent
        self.prompt = prompt
        self.sleep = sleep
        self.clock = clock
        self.on_start = on_start
        self.on_backup = on_backup
        self.on_fragment_written = on_fragment_written
        self.on_patched = on_patched
        self.on_rebuild = on_rebuild
        self.on_network = on_network
        self.on_auth_url = on_auth_url
        self.on_auth_missing = on_auth_missing
        self.on_connected = on_connected
        self.on_warning = on_warning
        self.on_complete = on_complete

    def run(self, facts: HostFacts) -> BootstrapReport:
        """
        Execute the bootstrap.

        Process:
        1. Preflight checks
        2. Backup configuration.nix
        3. Write the bootstrap module
        4. Add the module to the imports of configuration.nix
        5. Rebuild the system
        6. Bring up the mesh network (best-effort)

        Args:
            facts: Host facts for preflight and connection details

        Returns:
            BootstrapReport

        Raises:
            UnsupportedHostError, PrivilegeError: Preflight failed
            MalformedDocumentError, DocumentIOError: Patching failed
            ExternalCommandError: Rebuild failed
        """
        s = self.settings
        check_preflight(facts)

        if self.on_start:
            self.on_start()

        backup = create_backup(self.store, s.configuration_path, s.backup_root, now=self.clock())
        if self.on_backup:
            self.on_backup(backup)

        write_fragment(self.store, s.fragment_path)
        if self.on_fragment_written:
            self.on_fragment_written(str(s.fragment_path))

        patch = apply_import(self.store, s.configuration_path, s.fragment_reference)
        if self.on_patched:
            self.on_patched(patch)

        self.rebuild()

        network = self.bring_up_network(facts)

        report = BootstrapReport(
            backup=backup,
            fragment_path=s.fragment_path,
            patch_outcome=patch.outcome,
            network=network,
        )
        if self.on_complete:
            self.on_complete(report)
        return report

    def rebuild(self) -> None:
        """
        Raises:
            ExternalCommandError: If the rebuild exits non-zero or cannot start
        """
        if self.on_rebuild:
            self.on_rebuild()

        result = self.rebuilder.rebuild()
        if not result.ok:
            raise ExternalCommandError(
                "Failed to rebuild NixOS configuration. "
                "Please check the configuration and try again.",
                args=result.args,
                returncode=result.returncode,
                output=result.output,
            )
        logger.info("System rebuild succeeded")

    def bring_up_network(self, facts: HostFacts) -> NetworkReport:
        """
        Enable the VPN service, run `up` and collect connection details.

        Every step here is best-effort: failures are reported through
        on_warning and the run continues.
        """
        s = self.settings
        report = NetworkReport()

        if self.on_network:
            self.on_network(s.vpn_service)

        try:
            result = self.services.enable_now(s.vpn_service)
            report.service_started = result.ok
            if not result.ok:
                detail = result.output.strip() or f"exit code {result.returncode}"
                self._warn(f"Could not enable {s.vpn_service}: {detail}")
        except ExternalCommandError as e:
            self._warn(str(e))

        if s.settle_seconds > 0:
            self.sleep(s.settle_seconds)

        try:
            output = self.agent.up(ssh=s.ssh, reset=s.reset).output
        except ExternalCommandError as e:
            self._warn(str(e))
            output = ""

        url = extract_auth_url(output)
        if url is None:
            logger.info("No auth URL in tailscale output")
            if self.on_auth_missing:
                self.on_auth_missing()
            return report

        report.auth_url = url
        if self.on_auth_url:
            self.on_auth_url(url)

        if s.wait_for_auth and self.prompt:
            self.prompt.pause(AUTH_PAUSE_MESSAGE)

        try:
            report.connection = query_connection(self.agent, facts.hostname, facts.user)
        except ExternalCommandError as e:
            self._warn(str(e))

        if report.connection and self.on_connected:
            self.on_connected(report.connection)

        return report

    def _warn(self, message: str) -> None:
        logger.info(f"best-effort step failed: {message}")
        if self.on_warning:
            self.on_warning(message)
