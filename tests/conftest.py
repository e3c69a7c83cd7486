"""Shared fixtures: a scripted gateway and workflows at various stages."""

from typing import Callable, Dict, List, Set, Tuple

import pytest

from comicgen.config import TOTAL_PANELS
from comicgen.errors import GatewayError
from comicgen.gateway.base import ComicGateway, CoverArt
from comicgen.state.project import Character, DialogueLine, PanelScript, Project
from comicgen.state.session import WorkflowStage
from comicgen.styles import ComicStyle
from comicgen.workflow import ComicWorkflow


def make_script(count: int = TOTAL_PANELS) -> List[PanelScript]:
    """Panel scripts whose descriptions are "Panel 1" ... "Panel N"."""
    return [
        PanelScript(
            description=f"Panel {i + 1}",
            narration="Meanwhile..." if i % 4 == 0 else "",
            dialogue=[DialogueLine(character="Robo", speech=f"Beep {i + 1}")] if i % 2 else [],
        )
        for i in range(count)
    ]


class ScriptedGateway(ComicGateway):
    """Fake gateway with canned answers, failure injection and call hooks.

    ``failures`` maps a capability name to the message of the GatewayError it
    raises. ``failing_panels`` holds panel descriptions whose image fails.
    ``hooks`` maps a capability to a callable run with the call's arguments
    before it returns, which lets tests act while a call is "in flight".
    """

    def __init__(self):
        self.calls: List[Tuple[str, tuple]] = []
        self.failures: Dict[str, str] = {}
        self.failing_panels: Set[str] = set()
        self.hooks: Dict[str, Callable[..., None]] = {}
        self.script = make_script()

    def count(self, capability: str) -> int:
        return sum(1 for name, _ in self.calls if name == capability)

    def _call(self, capability: str, *args) -> None:
        self.calls.append((capability, args))
        hook = self.hooks.get(capability)
        if hook is not None:
            hook(*args)
        if capability in self.failures:
            raise GatewayError(self.failures[capability])

    def enrich_story(self, story_idea, characters):
        self._call("enrich_story", story_idea, characters)
        take = self.count("enrich_story")
        return f"Enriched: {story_idea}" if take == 1 else f"Enriched: {story_idea} (take {take})"

    def revise_story(self, current_story, feedback):
        self._call("revise_story", current_story, feedback)
        return f"{current_story} [revised: {feedback}]"

    def suggest_characters(self, story_idea):
        self._call("suggest_characters", story_idea)
        return [
            Character(id="sugg-test-0", name="Suggested Sam", appearance="green cloak",
                      personality="sly", backstory="A wandering thief."),
            Character(id="sugg-test-1", name="Suggested Sue", appearance="red boots",
                      personality="brave", backstory="A retired knight."),
        ]

    def create_comic_script(self, story, characters):
        self._call("create_comic_script", story, characters)
        return list(self.script)

    def generate_cover(self, story_idea, characters, style_prompt):
        self._call("generate_cover", story_idea, characters, style_prompt)
        return CoverArt(title="The Test Comic", image="cover-image")

    def generate_panel_image(self, panel_description, style_prompt):
        self._call("generate_panel_image", panel_description, style_prompt)
        if panel_description in self.failing_panels:
            raise GatewayError("Failed to generate an image for a panel.")
        return f"image:{panel_description}"

    def edit_panel_image(self, image, instruction):
        self._call("edit_panel_image", image, instruction)
        return f"{image}+{instruction}"


def drive_to_style_selection(workflow: ComicWorkflow, story: str = "A robot learns to paint") -> None:
    workflow.start()
    workflow.submit_story(story)
    workflow.save_character("Robo", "A tin robot with a paintbrush arm", "Curious")
    workflow.submit_characters()
    workflow.run_pending()
    workflow.approve_story()


def drive_to_display(workflow: ComicWorkflow) -> None:
    """Select a style and stop once the cover is drawn, before any panel."""
    drive_to_style_selection(workflow)
    workflow.select_style(ComicStyle.WESTERN_COMIC)
    steps = workflow.steps()
    for state in steps:
        if state.stage in (WorkflowStage.DISPLAY, WorkflowStage.STYLE_SELECTION):
            break
    steps.close()


@pytest.fixture
def gateway():
    return ScriptedGateway()


@pytest.fixture
def workflow(gateway):
    return ComicWorkflow(gateway)


@pytest.fixture
def display_workflow(workflow):
    """Workflow on the display stage with all panel slots still empty."""
    drive_to_display(workflow)
    assert workflow.state.stage == WorkflowStage.DISPLAY
    return workflow


@pytest.fixture
def finished_workflow(display_workflow):
    """Workflow on the display stage with every panel drawn."""
    display_workflow.run_pending()
    return display_workflow


@pytest.fixture
def sample_project():
    """A complete comic project with placeholder image payloads."""
    return Project(
        story_idea="A robot learns to paint",
        characters=[
            Character(id="manual-1", name="Robo", appearance="A tin robot", personality="Curious"),
        ],
        enriched_story="Robo finds a brush and paints the city.",
        comic_script=make_script(),
        selected_style=ComicStyle.WESTERN_COMIC,
        generated_panels=[f"img-{i}" for i in range(TOTAL_PANELS)],
        comic_title="Robo Paints",
        cover_image="cover-image",
    )
