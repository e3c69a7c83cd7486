"""Terminal interface for the comic wizard using Rich."""

import os
import platform
import subprocess
import webbrowser
from pathlib import Path
from typing import List, Optional

from rich.box import DOUBLE, ROUNDED
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import TOTAL_PANELS
from ..state.project import Character, Project
from ..state.session import SessionState, WorkflowStage
from ..styles import STYLES, StyleOption


def open_file(file_path: str | Path) -> bool:
    """Open a file in the system's default viewer."""
    path = Path(file_path).absolute()
    if not path.exists():
        return False

    system = platform.system()
    try:
        if system == "Darwin":
            subprocess.run(["open", str(path)], check=True)
        elif system == "Windows":
            os.startfile(str(path))
        else:
            try:
                subprocess.run(["xdg-open", str(path)], check=True, stderr=subprocess.DEVNULL)
            except (subprocess.CalledProcessError, FileNotFoundError):
                webbrowser.open(f"file://{path}")
    except (OSError, subprocess.CalledProcessError):
        return False
    return True


class TerminalUI:
    """Rich terminal rendering and prompts for each wizard stage."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def clear_screen(self) -> None:
        self.console.clear()

    def show_title_screen(self, mock: bool = False) -> None:
        """Display the welcome screen."""
        self.clear_screen()
        self.console.print(Panel(
            "[bold]Turn a story idea into a 20-panel comic book.[/bold]\n\n"
            "Describe your idea, build a cast, approve the story, pick a style,\n"
            "and watch the pages get drawn.",
            title="[bold cyan]ComicGen[/bold cyan]",
            box=DOUBLE,
            border_style="cyan",
        ))
        if mock:
            self.console.print("[yellow]Offline mode: placeholder art, no AI calls.[/yellow]")
        self.console.print()

    def show_stage(self, state: SessionState) -> None:
        """Header with the current stage and step number."""
        stage = state.stage
        self.console.rule(f"[bold]Step {int(stage)} of {int(WorkflowStage.DISPLAY)}: {stage.label}[/bold]")
        if state.error:
            self.show_error(state.error)

    def show_characters(self, characters: List[Character]) -> None:
        if not characters:
            self.console.print("[dim]No characters yet.[/dim]")
            return

        table = Table(box=ROUNDED, show_lines=True)
        table.add_column("#", style="dim", width=3)
        table.add_column("Name", style="bold")
        table.add_column("Appearance")
        table.add_column("Personality")
        for i, character in enumerate(characters, 1):
            table.add_row(str(i), character.name, character.appearance, character.personality)
        self.console.print(table)

    def show_story(self, story: str, title: str = "Your Story") -> None:
        self.console.print(Panel(story, title=f"[bold]{title}[/bold]", box=ROUNDED, border_style="blue"))

    def show_styles(self, styles: List[StyleOption] = STYLES) -> None:
        for i, style in enumerate(styles, 1):
            self.console.print(f"  [bold cyan][{i}][/bold cyan] {style.name.value}")
            self.console.print(f"      [dim]{style.prompt[:90]}...[/dim]")
        self.console.print()

    def show_comic(self, project: Project) -> None:
        """Title, generation progress and the script of every page."""
        done = sum(1 for p in project.generated_panels if p is not None)
        self.console.print(Panel(
            f"[bold]{project.comic_title or 'Untitled'}[/bold]\n"
            f"Style: {project.selected_style.value if project.selected_style else '-'}\n"
            f"Panels drawn: {done}/{TOTAL_PANELS}",
            box=DOUBLE,
            border_style="magenta",
        ))
        table = Table(box=ROUNDED)
        table.add_column("Panel", width=6)
        table.add_column("Art", width=4)
        table.add_column("Description")
        table.add_column("Text")
        for index, script in enumerate(project.comic_script):
            has_art = index < len(project.generated_panels) and project.generated_panels[index]
            lines = [f"[italic]{script.narration}[/italic]"] if script.narration else []
            lines += [f"[bold]{d.character}:[/bold] {d.speech}" for d in script.dialogue]
            table.add_row(str(index + 1), "[green]yes[/green]" if has_art else "[dim]-[/dim]",
                          script.description, "\n".join(lines))
        self.console.print(table)

    def show_progress(self, state: SessionState, message: str) -> None:
        summary = state.summary()
        if state.stage == WorkflowStage.DISPLAY:
            self.console.print(
                f"[dim italic]{message} ({summary['panels_done']}/{summary['panels_total']} panels)[/dim italic]"
            )
        else:
            self.console.print(f"[dim italic]{message}[/dim italic]")

    def show_error(self, message: str) -> None:
        self.console.print(Panel(message, title="[bold red]Error[/bold red]", box=ROUNDED, border_style="red"))

    def show_message(self, message: str, style: str = "white") -> None:
        self.console.print(f"[{style}]{message}[/{style}]")

    def ask(self, prompt: str, default: str = "") -> str:
        answer = self.console.input(f"[bold green]{prompt}[/bold green] ").strip()
        return answer or default

    def confirm(self, message: str) -> bool:
        response = self.console.input(f"{message} [dim](y/n)[/dim] ").strip().lower()
        return response in ("y", "yes")

    def choose(self, message: str, options: List[str]) -> int | None:
        """Numbered menu; returns the 0-based choice or None."""
        for i, option in enumerate(options, 1):
            self.console.print(f"  [{i}] {option}")
        try:
            choice = int(self.ask(message))
        except ValueError:
            return None
        return choice - 1 if 1 <= choice <= len(options) else None
