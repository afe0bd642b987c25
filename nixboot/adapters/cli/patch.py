"""
Patch CLI commands
"""
import difflib
import typer
from pathlib import Path

from rich.markup import escape
from rich.syntax import Syntax

from ...core.constants import FRAGMENT_REFERENCE
from ...core.logging import get_logger, get_stdout_console, get_stderr_console
from ...core.exceptions import BootstrapError
from ...domain.bootstrap import FRAGMENT_TEMPLATE
from ...domain.patcher import PatchOutcome, ensure_import, apply_import
from ...infrastructure.files import LocalDocumentStore, SudoDocumentStore
from ...infrastructure.system import SubprocessRunner
from .bootstrap import report_error
from .prompts import RichPromptProvider

logger = get_logger(__name__)
stdout_console = get_stdout_console()
stderr_console = get_stderr_console()
prompt_provider = RichPromptProvider()

OUTCOME_MESSAGES = {
    PatchOutcome.ALREADY_PRESENT: "{ref} already imported by {path}",
    PatchOutcome.APPENDED: "Added {ref} to the imports of {path}",
    PatchOutcome.CREATED: "Created an imports list with {ref} in {path}",
}


def register_patch_commands(app: typer.Typer) -> None:
    """Register patch and fragment commands on the main app"""
    app.command(name="patch")(patch_run)
    app.command(name="fragment")(fragment_show)


def render_diff(path: Path, before: str, after: str) -> str:
    """Unified diff between two versions of a document"""
    return "".join(difflib.unified_diff(
        before.splitlines(keepends=True),
        after.splitlines(keepends=True),
        fromfile=f"{path} (current)",
        tofile=f"{path} (patched)",
    ))


def patch_run(
    path: Path = typer.Argument(..., help="Nix file to add the import to"),
    reference: str = typer.Option(
        FRAGMENT_REFERENCE, "--reference", "-r", help="Import entry to add"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", "-n", help="Show the change as a diff without writing"
    ),
    sudo: bool = typer.Option(
        False, "--sudo", help="Write through sudo (for root-owned files)"
    ),
):
    """
    Add an import to a NixOS configuration file, once

    Examples:
        nixboot patch /etc/nixos/configuration.nix --sudo
        nixboot patch ./configuration.nix -r ./extra.nix --dry-run
    """
    try:
        store = SudoDocumentStore(SubprocessRunner()) if sudo else LocalDocumentStore()

        if dry_run:
            before = store.read(path)
            result = ensure_import(before, reference)
            if result.changed:
                diff = render_diff(path, before, result.text)
                stdout_console.print(Syntax(diff, "diff", theme="ansi_dark"))
        else:
            result = apply_import(store, path, reference)

        message = OUTCOME_MESSAGES[result.outcome].format(
            ref=escape(reference.strip()), path=escape(str(path))
        )
        if not result.changed:
            prompt_provider.info(message)
        elif dry_run:
            prompt_provider.info(f"[dim](dry run)[/dim] {message}")
        else:
            prompt_provider.success(message)

    except BootstrapError as e:
        report_error(e)
        raise typer.Exit(1)
    except ValueError as e:
        stderr_console.print(f"[red]Error:[/red] {escape(str(e))}")
        raise typer.Exit(1)


def fragment_show():
    """
    Print the bootstrap module to stdout

    Examples:
        nixboot fragment > bootstrap-module.nix
    """
    typer.echo(FRAGMENT_TEMPLATE, nl=False)
