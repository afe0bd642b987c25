"""
Rich-based user prompts
"""
from typing import Optional
from rich.console import Console
from rich.prompt import Prompt

from ...core.interfaces import PromptProvider
from ...core.logging import get_stdout_console


class RichPromptProvider(PromptProvider):
    """Rich-based prompt provider"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_stdout_console()

    def pause(self, message: str) -> None:
        """Wait for the user to press Enter, a closed stdin counts as Enter"""
        try:
            Prompt.ask(message, default="", show_default=False, console=self.console)
        except EOFError:
            self.console.print()

    def info(self, message: str) -> None:
        """Display info message"""
        self.console.print(f"[cyan]ℹ[/cyan] {message}")

    def success(self, message: str) -> None:
        """Display success message"""
        self.console.print(f"[green]✓[/green] {message}")

    def warning(self, message: str) -> None:
        """Display warning message"""
        self.console.print(f"[yellow]⚠[/yellow] {message}")
