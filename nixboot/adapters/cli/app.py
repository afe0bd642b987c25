"""
Main CLI application
"""
import typer
from pathlib import Path
from typing import Optional

from ...core.logging import setup_logging, get_logger
from .bootstrap import register_bootstrap_commands
from .patch import register_patch_commands

logger = get_logger(__name__)

# Create main app
app = typer.Typer(
    name="nixboot",
    add_completion=False,
    help="Bootstrap NixOS for Tailscale SSH and VS Code Remote editing",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

register_bootstrap_commands(app)
register_patch_commands(app)


@app.callback()
def main(
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)",
    ),
    log_file: Optional[Path] = typer.Option(
        None,
        "--log-file",
        help="Log file path",
    ),
):
    """
    nixboot - NixOS bootstrap for Tailscale SSH + VS Code Remote

    Use subcommands to perform different operations:
    - run: Full bootstrap (module, import, rebuild, Tailscale)
    - patch: Add an import to a configuration file
    - fragment: Print the bootstrap module
    - status: Show Tailscale connection details
    """
    setup_logging(level=log_level, log_file=log_file)


def run():
    """CLI entry point"""
    app()


if __name__ == "__main__":
    run()
