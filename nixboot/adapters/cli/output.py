"""
Console rendering for bootstrap results
"""
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from ...core.constants import IP_PLACEHOLDER
from ...domain.bootstrap import BackupRecord, ConnectionInfo

FEATURES = [
    "Tailscale SSH enabled",
    "VS Code Remote SSH compatibility",
    "QEMU Guest Agent (for VMs)",
    "Dynamic binary support (nix-ld)",
]


def auth_panel(url: str) -> Panel:
    """Panel asking the operator to open the login URL"""
    body = Text()
    body.append("Please visit the following URL to authenticate Tailscale:\n\n")
    body.append(url, style="yellow")
    body.append("\n\nAfter authentication, you can use Tailscale SSH.")
    return Panel(body, title="TAILSCALE SETUP", border_style="blue", expand=False)


def complete_panel(info: ConnectionInfo) -> Panel:
    """Panel with enabled features and how to connect"""
    lines = ["Your NixOS system is now configured with:"]
    lines += [f"[green]✓[/green] {feature}" for feature in FEATURES]
    lines += ["", "Connection details:"]

    ip = escape(info.ip) if info.has_ip else None
    host = escape(info.hostname)
    user = escape(info.user)
    if ip:
        lines.append(f"• Tailscale IP: [yellow]{ip}[/yellow]")
    else:
        lines.append(f"• Tailscale IP: [dim]{IP_PLACEHOLDER}[/dim]")
    lines.append(f"• Hostname: [yellow]{host}[/yellow]")

    lines += ["", "To connect with VS Code:", "1. Install 'Remote - SSH' extension in VS Code"]
    if ip:
        lines.append(f"2. Connect using: [yellow]{user}@{ip}[/yellow]")
    lines.append(f"3. Or use hostname: [yellow]{user}@{host}[/yellow]")

    return Panel("\n".join(lines), title="BOOTSTRAP COMPLETE!", border_style="green", expand=False)


def print_auth_missing(console: Console) -> None:
    """Manual instructions when `tailscale up` printed no login URL"""
    for line in (
        "Could not generate Tailscale auth URL automatically.",
        "Please run: sudo tailscale up --ssh",
        "Then visit the provided URL to authenticate.",
    ):
        console.print(f"[yellow]⚠[/yellow] {line}")


def print_next_steps(
    console: Console,
    backup: BackupRecord,
    fragment_path: Path,
    configuration_path: Path,
    auth_url: Optional[str] = None,
) -> None:
    """Closing summary printed after every successful run"""
    backup_dir = escape(str(backup.directory))

    console.print()
    console.print("[green]✓[/green] Bootstrap completed successfully!")
    if backup.snapshot:
        console.print(f"[cyan]ℹ[/cyan] Configuration backup saved to: {backup_dir}")
    else:
        console.print(f"[cyan]ℹ[/cyan] No configuration to back up, backup directory: {backup_dir}")

    console.print()
    console.print("[bold blue]Next Steps:[/bold blue]")
    first = "Complete Tailscale authentication using the URL above" if auth_url else \
        "Authenticate Tailscale with: sudo tailscale up --ssh"
    console.print(f"1. {first}")
    console.print("2. Install 'Remote - SSH' extension in VS Code")
    console.print("3. Add SSH connection in VS Code using your Tailscale IP or hostname")
    console.print("4. VS Code Remote editing will work seamlessly")

    console.print()
    console.print("[bold blue]Configuration Details:[/bold blue]")
    console.print(f"• All changes are in {escape(str(fragment_path))}")
    console.print(f"• Original configuration backed up to {backup_dir}")
    console.print(
        f"• To remove: edit {escape(str(configuration_path))} "
        "and run 'sudo nixos-rebuild switch'"
    )

    console.print()
    console.print("[yellow]Note:[/yellow] This configuration enables VS Code Remote SSH editing support.")
    console.print(
        "[yellow]Note:[/yellow] The first connection may take a moment "
        "as VS Code sets up its remote environment."
    )
