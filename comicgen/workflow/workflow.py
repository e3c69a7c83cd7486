"""The comic creation driver.

``ComicWorkflow`` owns one session. User actions are dispatched through the
pure ``reduce`` function; AI work for the automatic stages (enriching the
story, writing the script, drawing the cover, drawing the panels) runs in
``steps()``, which front ends iterate to report progress.

The lock only guards swapping the state. It is never held while the gateway
is called, so a reset or an import from another thread always goes through
and turns the pending completion into a stale no-op.
"""

import logging
import threading
from typing import Iterator, Optional, Union

from ..config import GENERATION_MESSAGES
from ..errors import GatewayError, PersistenceError
from ..gateway.base import ComicGateway
from ..persistence import export_project, parse_project
from ..state.project import Character, Project, new_manual_character_id
from ..state.session import SessionState, StoryLoadingAction, WorkflowStage
from ..styles import ComicStyle
from .panel_editor import PanelEditor
from .panel_loop import PanelGenerationLoop
from .transitions import (
    BackToStoryRequested,
    CharacterRemoved,
    CharacterSaved,
    CharactersSubmitted,
    CharactersSuggested,
    ComicResumed,
    CoverGenerated,
    GatewayFailed,
    ImportFailed,
    ProjectImported,
    ResetRequested,
    ScriptGenerated,
    StageWorkFinished,
    StageWorkStarted,
    StartRequested,
    StoryActionStarted,
    StoryApproved,
    StoryEnriched,
    StoryRevised,
    StorySubmitted,
    StyleSelected,
    SuggestionFailed,
    SuggestionStarted,
    reduce,
)

logger = logging.getLogger(__name__)


def generation_message(tick: int) -> str:
    """Rotating progress message shown while artwork is generated."""
    return GENERATION_MESSAGES[tick % len(GENERATION_MESSAGES)]


class ComicWorkflow:
    """Drives one comic creation session against an AI gateway."""

    def __init__(self, gateway: ComicGateway, state: Optional[SessionState] = None):
        self.gateway = gateway
        self._state = state or SessionState()
        self._lock = threading.RLock()
        self.panel_loop = PanelGenerationLoop(self)
        self.editor = PanelEditor(self)

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def project(self) -> Project:
        return self.state.project

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------

    def dispatch(self, event: object) -> SessionState:
        """Apply ``event`` to the current state and return the result."""
        with self._lock:
            before = self._state
            after = reduce(before, event)
            if after.stage != before.stage:
                logger.info("Session %s: %s -> %s", before.session_id[:8],
                            before.stage.name, after.stage.name)
            self._state = after
            return after

    def begin(self, event: object) -> Optional[SessionState]:
        """Dispatch ``event``; return None when the reducer ignored it."""
        with self._lock:
            before = self._state
            after = self.dispatch(event)
            return None if after is before else after

    # ------------------------------------------------------------------
    # Story and characters
    # ------------------------------------------------------------------

    def start(self) -> SessionState:
        return self.dispatch(StartRequested())

    def submit_story(self, story: str) -> SessionState:
        return self.dispatch(StorySubmitted(story=story))

    def back_to_story(self) -> SessionState:
        return self.dispatch(BackToStoryRequested())

    def save_character(
        self,
        name: str,
        appearance: str,
        personality: str,
        backstory: str = "",
        character_id: Optional[str] = None,
    ) -> Character:
        """Add a character, or update the one with ``character_id``."""
        character = Character(
            id=character_id or new_manual_character_id(),
            name=name.strip(),
            appearance=appearance.strip(),
            personality=personality.strip(),
            backstory=backstory.strip(),
        )
        self.dispatch(CharacterSaved(character=character))
        return character

    def remove_character(self, character_id: str) -> SessionState:
        return self.dispatch(CharacterRemoved(character_id=character_id))

    def suggest_characters(self) -> SessionState:
        """Ask the gateway for a cast and append it; ignored while one is pending."""
        started = self.begin(SuggestionStarted())
        if started is None:
            return self.state
        try:
            characters = self.gateway.suggest_characters(started.project.story_idea)
        except GatewayError as e:
            return self.dispatch(SuggestionFailed(message=str(e), epoch=started.epoch))
        return self.dispatch(CharactersSuggested(characters=characters, epoch=started.epoch))

    def submit_characters(self) -> SessionState:
        """Move on to story enrichment; the work itself runs in ``steps()``."""
        return self.dispatch(CharactersSubmitted())

    # ------------------------------------------------------------------
    # Story approval
    # ------------------------------------------------------------------

    def approve_story(self) -> SessionState:
        return self.dispatch(StoryApproved())

    def revise_story(self, feedback: str) -> SessionState:
        started = self.begin(StoryActionStarted(action=StoryLoadingAction.REVISE, feedback=feedback))
        if started is None:
            return self.state
        return self._run(
            started,
            lambda: StoryRevised(
                text=self.gateway.revise_story(started.project.enriched_story, feedback.strip()),
                epoch=started.epoch,
            ),
        )

    def regenerate_story(self) -> SessionState:
        started = self.begin(StoryActionStarted(action=StoryLoadingAction.REGENERATE))
        if started is None:
            return self.state
        return self._run(started, lambda: self._enrich(started))

    # ------------------------------------------------------------------
    # Style and generation
    # ------------------------------------------------------------------

    def select_style(self, style: Union[ComicStyle, str]) -> SessionState:
        """Pick a style; script, cover and panels follow in ``steps()``."""
        return self.dispatch(StyleSelected(style=style))

    def resume_comic(self) -> SessionState:
        """Return to an existing comic after a failure and finish its panels."""
        return self.dispatch(ComicResumed())

    @property
    def has_pending_work(self) -> bool:
        state = self.state
        if state.stage in (
            WorkflowStage.STORY_ENRICHING,
            WorkflowStage.GENERATING_SCRIPT,
            WorkflowStage.GENERATING_COVER,
        ):
            return not state.stage_work_running
        return (
            state.stage == WorkflowStage.DISPLAY
            and not state.panel_loop_running
            and bool(state.project.missing_panel_indices())
        )

    def steps(self) -> Iterator[SessionState]:
        """Run the automatic stages, yielding the session after each step.

        Stops when the session reaches a stage that needs the user, or when
        the comic is fully drawn.
        """
        stage_work = {
            WorkflowStage.STORY_ENRICHING: self._enrich,
            WorkflowStage.GENERATING_SCRIPT: self._write_script,
            WorkflowStage.GENERATING_COVER: self._draw_cover,
        }
        while True:
            state = self.state
            if state.stage == WorkflowStage.DISPLAY:
                yield from self.panel_loop.run()
                return
            work = stage_work.get(state.stage)
            if work is None:
                return

            started = self.begin(StageWorkStarted(epoch=state.epoch, stage=state.stage))
            if started is None:
                logger.debug("%s already running for session %s", state.stage.label, state.session_id)
                return
            try:
                result = self._run(started, lambda: work(started))
            finally:
                self.dispatch(StageWorkFinished(epoch=started.epoch))
            yield result

    def run_pending(self) -> SessionState:
        """Run ``steps()`` to completion and return the final state."""
        for _ in self.steps():
            pass
        return self.state

    def _run(self, started: SessionState, work) -> SessionState:
        """Call ``work()`` and dispatch its completion, or the failure."""
        try:
            completion = work()
        except GatewayError as e:
            logger.warning("%s failed: %s", started.stage.label, e)
            return self.dispatch(GatewayFailed(message=str(e), epoch=started.epoch, stage=started.stage))
        return self.dispatch(completion)

    def _enrich(self, started: SessionState) -> StoryEnriched:
        project = started.project
        text = self.gateway.enrich_story(project.story_idea, project.characters)
        return StoryEnriched(
            text=text,
            epoch=started.epoch,
            regenerate=started.stage == WorkflowStage.STORY_APPROVAL,
        )

    def _write_script(self, started: SessionState) -> ScriptGenerated:
        project = started.project
        script = self.gateway.create_comic_script(project.enriched_story, project.characters)
        return ScriptGenerated(script=script, epoch=started.epoch)

    def _draw_cover(self, started: SessionState) -> CoverGenerated:
        project = started.project
        cover = self.gateway.generate_cover(project.story_idea, project.characters, project.style.prompt)
        return CoverGenerated(title=cover.title, image=cover.image, epoch=started.epoch)

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def reset(self) -> SessionState:
        """Start over; any work still in flight is discarded when it finishes."""
        return self.dispatch(ResetRequested())

    def export_project(self) -> str:
        """Project file contents for the current comic."""
        return export_project(self.project)

    def import_project(self, raw: Union[str, bytes]) -> SessionState:
        """Replace the session with a project file's contents.

        On failure the session returns to the welcome screen with the error
        and the previous project is kept.
        """
        try:
            project = parse_project(raw)
        except PersistenceError as e:
            logger.warning("Import failed: %s", e)
            return self.dispatch(ImportFailed(message=str(e)))
        return self.dispatch(ProjectImported(project=project))
