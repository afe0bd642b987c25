"""
Bootstrap CLI commands
"""
import typer
from pathlib import Path
from typing import Optional, Dict, Any

from rich.markup import escape

from ...core.logging import get_logger, get_stdout_console, get_stderr_console
from ...core.exceptions import BootstrapError, ExternalCommandError
from ...domain.bootstrap import (
    BackupRecord,
    BootstrapService,
    BootstrapSettings,
    query_connection,
)
from ...domain.patcher import PatchResult
from ...infrastructure.files import SudoDocumentStore
from ...infrastructure.system import (
    NixosRebuilder,
    SubprocessRunner,
    SystemdServiceManager,
    TailscaleAgent,
    inspect_host,
)
from ..config.loader import ConfigLoader
from .output import auth_panel, complete_panel, print_auth_missing, print_next_steps
from .prompts import RichPromptProvider

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()
prompt_provider = RichPromptProvider()


def register_bootstrap_commands(app: typer.Typer) -> None:
    """Register run and status commands on the main app"""
    app.command(name="run")(bootstrap_run)
    app.command(name="status")(bootstrap_status)


def load_settings(config_file: Optional[Path], overrides: Dict[str, Any]) -> BootstrapSettings:
    """Merge the optional TOML file with CLI overrides into settings"""
    cfg = ConfigLoader().load(toml_path=config_file, cli_overrides=overrides)
    return BootstrapSettings.from_dict(cfg)


def report_error(e: BootstrapError) -> None:
    """Print a fatal error the way every command does"""
    stderr_console.print(f"[red]Error:[/red] {escape(str(e))}")
    if isinstance(e, ExternalCommandError) and e.returncode is not None:
        stderr_console.print(f"  [dim]command exited with code {e.returncode}[/dim]")


def _on_backup(record: BackupRecord) -> None:
    if record.snapshot:
        prompt_provider.info(f"Backed up current configuration to {escape(str(record.directory))}")
    else:
        prompt_provider.warning("No existing configuration found, nothing to back up")


def _on_patched(result: PatchResult) -> None:
    if result.changed:
        prompt_provider.success("Successfully added bootstrap module to configuration imports")
    else:
        prompt_provider.info("Bootstrap module already imported")


def bootstrap_run(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path (TOML)"
    ),
    configuration: Optional[Path] = typer.Option(
        None, "--configuration", help="NixOS configuration file to patch"
    ),
    fragment_path: Optional[Path] = typer.Option(
        None, "--fragment-path", help="Where to write the bootstrap module"
    ),
    no_wait: bool = typer.Option(
        False, "--no-wait", help="Do not wait for Tailscale authentication"
    ),
):
    """
    Bootstrap this NixOS machine for Tailscale SSH + VS Code Remote editing

    Writes the bootstrap module, imports it from configuration.nix, rebuilds
    the system and brings up Tailscale with SSH enabled.

    Examples:
        nixboot run
        nixboot run --no-wait
        nixboot run --config bootstrap.toml
    """
    try:
        settings = load_settings(config_file, {
            "paths": {"configuration": configuration, "fragment": fragment_path},
            "network": {"wait_for_auth": False if no_wait else None},
        })

        runner = SubprocessRunner()
        service = BootstrapService(
            settings=settings,
            store=SudoDocumentStore(runner, settings.sudo),
            rebuilder=NixosRebuilder(runner, settings.sudo, settings.rebuild_action),
            services=SystemdServiceManager(runner, settings.sudo),
            agent=TailscaleAgent(runner, settings.sudo),
            prompt=prompt_provider,
            on_start=lambda: prompt_provider.info(
                "Starting NixOS bootstrap for Tailscale SSH + VS Code Remote editing..."
            ),
            on_backup=_on_backup,
            on_fragment_written=lambda path: prompt_provider.success(
                f"Created bootstrap module {escape(path)}"
            ),
            on_patched=_on_patched,
            on_rebuild=lambda: prompt_provider.info("Rebuilding NixOS configuration..."),
            on_network=lambda unit: prompt_provider.info(
                f"Starting {escape(unit)} and configuring Tailscale with SSH support..."
            ),
            on_auth_url=lambda url: stdout_console.print(auth_panel(url)),
            on_auth_missing=lambda: print_auth_missing(stdout_console),
            on_connected=lambda info: stdout_console.print(complete_panel(info)),
            on_warning=lambda message: prompt_provider.warning(escape(message)),
        )

        report = service.run(inspect_host(settings.marker_path))

        print_next_steps(
            stdout_console,
            report.backup,
            report.fragment_path,
            settings.configuration_path,
            auth_url=report.network.auth_url,
        )

    except KeyboardInterrupt:
        stderr_console.print("\n[yellow]Interrupted[/yellow]")
        raise typer.Exit(130)
    except BootstrapError as e:
        report_error(e)
        raise typer.Exit(1)
    except Exception as e:
        logger.exception("Bootstrap failed")
        stderr_console.print(f"[red]Error:[/red] Bootstrap failed: {escape(str(e))}")
        raise typer.Exit(1)


def bootstrap_status(
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path (TOML)"
    ),
):
    """
    Show how to connect to this machine over Tailscale

    Examples:
        nixboot status
    """
    try:
        settings = load_settings(config_file, {})
        agent = TailscaleAgent(SubprocessRunner(), settings.sudo)
        facts = inspect_host(settings.marker_path)

        info = query_connection(agent, facts.hostname, facts.user)
        if info is None:
            prompt_provider.warning("Tailscale is not running or not authenticated")
            prompt_provider.warning("Please run: sudo tailscale up --ssh")
            raise typer.Exit(1)

        stdout_console.print(complete_panel(info))

    except BootstrapError as e:
        report_error(e)
        raise typer.Exit(1)
