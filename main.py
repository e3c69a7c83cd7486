#!/usr/bin/env python3
"""
ComicGen - terminal wizard

Walks through the comic creation stages in the terminal: story idea,
characters, story approval, style, and the finished comic with its panel
editor. Projects and PDFs are written to the exports directory.
"""

from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv

from comicgen.comic_book import ComicBookRenderer
from comicgen.config import EXPORTS_DIR, PROJECT_FILENAME
from comicgen.errors import ComicGenError
from comicgen.gateway import MockComicGateway, create_gateway
from comicgen.logging import setup_logging
from comicgen.persistence import save_project_file
from comicgen.state.session import WorkflowStage
from comicgen.styles import STYLES
from comicgen.ui import TerminalUI, open_file
from comicgen.workflow import ComicWorkflow, generation_message


class ComicWizard:
    """Runs one ComicWorkflow interactively until the user quits."""

    def __init__(self, use_mock: bool = False, exports_dir: str = EXPORTS_DIR):
        load_dotenv()
        gateway = create_gateway(use_mock=use_mock)
        self.mock = isinstance(gateway, MockComicGateway)
        self.workflow = ComicWorkflow(gateway)
        self.ui = TerminalUI()
        self.exports_dir = Path(exports_dir)

    def import_file(self, path: str) -> None:
        try:
            raw = Path(path).read_bytes()
        except OSError as e:
            self.ui.show_error(f"Could not read {path}: {e}")
            return
        self.workflow.import_project(raw)

    def run(self) -> None:
        self.ui.show_title_screen(mock=self.mock)
        handlers = {
            WorkflowStage.WELCOME: self._welcome,
            WorkflowStage.STORY_INPUT: self._story_input,
            WorkflowStage.CHARACTER_CREATION: self._characters,
            WorkflowStage.STORY_APPROVAL: self._story_approval,
            WorkflowStage.STYLE_SELECTION: self._style_selection,
            WorkflowStage.DISPLAY: self._display,
        }
        while True:
            self._run_pending()
            state = self.workflow.state
            self.ui.show_stage(state)
            try:
                if handlers[state.stage]() is False:
                    return
            except ComicGenError as e:
                self.ui.show_error(str(e))

    def _run_pending(self) -> None:
        for tick, state in enumerate(self.workflow.steps()):
            self.ui.show_progress(state, generation_message(tick))

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _welcome(self) -> bool:
        choice = self.ui.choose("Choose:", ["Create a new comic", "Open a project file", "Quit"])
        if choice == 0:
            self.workflow.start()
        elif choice == 1:
            self.import_file(self.ui.ask("Path to project file:"))
        elif choice == 2:
            return False
        return True

    def _story_input(self) -> None:
        self.workflow.submit_story(self.ui.ask("What is your story about?"))

    def _characters(self) -> None:
        project = self.workflow.project
        self.ui.show_story(project.story_idea, title="Story Idea")
        self.ui.show_characters(project.characters)
        choice = self.ui.choose("Choose:", [
            "Add a character",
            "Suggest characters with AI",
            "Remove a character",
            "Continue to story",
            "Back to story idea",
        ])
        if choice == 0:
            self.workflow.save_character(
                name=self.ui.ask("Name:"),
                appearance=self.ui.ask("Appearance:"),
                personality=self.ui.ask("Personality:"),
                backstory=self.ui.ask("Backstory (optional):"),
            )
        elif choice == 1:
            self.ui.show_message("Asking for character ideas...", "dim italic")
            self.workflow.suggest_characters()
        elif choice == 2 and project.characters:
            index = self.ui.choose("Remove which?", [c.name for c in project.characters])
            if index is not None:
                self.workflow.remove_character(project.characters[index].id)
        elif choice == 3:
            self.workflow.submit_characters()
        elif choice == 4:
            self.workflow.back_to_story()

    def _story_approval(self) -> None:
        self.ui.show_story(self.workflow.project.enriched_story)
        choice = self.ui.choose("Choose:", ["Approve story", "Revise with feedback", "Regenerate"])
        if choice == 0:
            self.workflow.approve_story()
        elif choice == 1:
            feedback = self.ui.ask("What should change?")
            self.ui.show_message("Revising the story...", "dim italic")
            self.workflow.revise_story(feedback)
        elif choice == 2:
            self.ui.show_message("Rewriting the story...", "dim italic")
            self.workflow.regenerate_story()

    def _style_selection(self) -> None:
        self.ui.show_styles()
        options = [style.name.value for style in STYLES]
        if self.workflow.project.comic_script:
            options.append("Resume the current comic")
        choice = self.ui.choose("Pick a style:", options)
        if choice is None:
            return
        if choice == len(STYLES):
            self.workflow.resume_comic()
        else:
            self.workflow.select_style(STYLES[choice].name)

    def _display(self) -> None:
        project = self.workflow.project
        self.ui.show_comic(project)
        choice = self.ui.choose("Choose:", [
            "Edit a panel",
            "Save project",
            "Export PDF",
            "Create a new comic",
        ])
        if choice == 0:
            self._edit_panel()
        elif choice == 1:
            self._save_project()
        elif choice == 2:
            self._export_pdf()
        elif choice == 3 and self.ui.confirm("Discard this comic and start over?"):
            self.workflow.reset()

    def _edit_panel(self) -> None:
        editor = self.workflow.editor
        try:
            number = int(self.ui.ask("Panel number:"))
        except ValueError:
            return
        editor.open(number - 1)

        while editor.current is not None:
            current = editor.current
            if current.error:
                self.ui.show_error(current.error)
            status = "draft ready" if current.draft_image else "no draft"
            choice = self.ui.choose(f"Panel {current.panel_index + 1} ({status}):", [
                "Describe an edit",
                "Save draft",
                "Discard draft",
                "Close editor",
            ])
            if choice == 0:
                self.ui.show_message("Editing the panel...", "dim italic")
                editor.generate_edit(self.ui.ask("What should change?"))
            elif choice == 1:
                editor.save()
            elif choice == 2:
                editor.discard()
            elif choice == 3:
                editor.close()

    def _save_project(self) -> None:
        path = save_project_file(self.workflow.project, self.exports_dir, PROJECT_FILENAME)
        self.ui.show_message(f"Project saved to {path}", "green")

    def _export_pdf(self) -> None:
        project = self.workflow.project
        if project.is_generating:
            self.ui.show_error("The comic is still being drawn. Resume it before exporting.")
            return
        self.exports_dir.mkdir(parents=True, exist_ok=True)
        path = self.exports_dir / f"comic_{datetime.now().strftime('%Y%m%d_%H%M%S')}.pdf"
        path.write_bytes(ComicBookRenderer(project).render_pdf())
        self.ui.show_message(f"Comic saved to {path}", "green")
        if self.ui.confirm("Open it now?"):
            open_file(path)


def main():
    """Entry point."""
    import argparse

    parser = argparse.ArgumentParser(description="ComicGen - turn a story idea into a comic book")
    parser.add_argument(
        "--mock",
        action="store_true",
        help="Use placeholder art and text (no API calls)"
    )
    parser.add_argument(
        "--import",
        dest="import_file",
        metavar="FILE",
        help="Open a saved project file"
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Console log level (DEBUG, INFO, WARNING, ERROR)"
    )

    args = parser.parse_args()
    setup_logging(args.log_level)

    try:
        wizard = ComicWizard(use_mock=args.mock)
        if args.import_file:
            wizard.import_file(args.import_file)
        wizard.run()
    except KeyboardInterrupt:
        print("\n\nInterrupted. Goodbye!")


if __name__ == "__main__":
    main()
