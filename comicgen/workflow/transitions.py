"""Pure transition function for the comic workflow.

``reduce(state, event)`` returns the next ``SessionState``. It never performs
I/O: AI calls happen in the driver, which reports their outcome back as
completion events carrying the epoch they were started in.

Three outcomes are possible for an event:

- a new state is returned;
- the very same state object is returned, meaning the event was a no-op
  (a duplicate submit while work is in flight, or a stale completion);
- ``InputValidationError`` / ``StageError`` is raised and nothing changes.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Type

from ..config import TOTAL_PANELS
from ..errors import InputValidationError, StageError
from ..state.project import Character, PanelScript, Project
from ..state.session import (
    ASYNC_STAGES,
    PanelEditorState,
    SessionState,
    StoryLoadingAction,
    WorkflowStage,
    recovery_stage,
)
from ..styles import ComicStyle, get_style

logger = logging.getLogger(__name__)


# --- User actions ---

@dataclass(frozen=True)
class StartRequested:
    pass


@dataclass(frozen=True)
class StorySubmitted:
    story: str


@dataclass(frozen=True)
class BackToStoryRequested:
    pass


@dataclass(frozen=True)
class CharacterSaved:
    character: Character


@dataclass(frozen=True)
class CharacterRemoved:
    character_id: str


@dataclass(frozen=True)
class SuggestionStarted:
    pass


@dataclass(frozen=True)
class CharactersSubmitted:
    pass


@dataclass(frozen=True)
class StoryActionStarted:
    action: StoryLoadingAction
    feedback: str = ""


@dataclass(frozen=True)
class StoryApproved:
    pass


@dataclass(frozen=True)
class StyleSelected:
    style: ComicStyle | str


@dataclass(frozen=True)
class ComicResumed:
    pass


@dataclass(frozen=True)
class EditorOpened:
    panel_index: int


@dataclass(frozen=True)
class EditStarted:
    instruction: str


@dataclass(frozen=True)
class EditDiscarded:
    pass


@dataclass(frozen=True)
class EditCommitted:
    pass


@dataclass(frozen=True)
class EditorClosed:
    pass


@dataclass(frozen=True)
class ProjectImported:
    project: Project


@dataclass(frozen=True)
class ImportFailed:
    message: str


@dataclass(frozen=True)
class ResetRequested:
    pass


# --- Completions reported by the driver ---

@dataclass(frozen=True)
class StageWorkStarted:
    """The driver is about to run the AI call of an automatic stage."""

    epoch: int
    stage: WorkflowStage


@dataclass(frozen=True)
class StageWorkFinished:
    epoch: int


@dataclass(frozen=True)
class CharactersSuggested:
    characters: list[Character]
    epoch: int


@dataclass(frozen=True)
class SuggestionFailed:
    message: str
    epoch: int


@dataclass(frozen=True)
class StoryEnriched:
    text: str
    epoch: int
    regenerate: bool = False


@dataclass(frozen=True)
class StoryRevised:
    text: str
    epoch: int


@dataclass(frozen=True)
class ScriptGenerated:
    script: list[PanelScript]
    epoch: int


@dataclass(frozen=True)
class CoverGenerated:
    title: str
    image: str
    epoch: int


@dataclass(frozen=True)
class PanelLoopStarted:
    epoch: int


@dataclass(frozen=True)
class PanelImageGenerated:
    panel_index: int
    image: str
    epoch: int


@dataclass(frozen=True)
class PanelLoopFinished:
    epoch: int


@dataclass(frozen=True)
class EditGenerated:
    panel_index: int
    image: str
    epoch: int


@dataclass(frozen=True)
class EditFailed:
    panel_index: int
    message: str
    epoch: int


@dataclass(frozen=True)
class GatewayFailed:
    """An AI call failed while the session was in ``stage``."""

    message: str
    epoch: int
    stage: WorkflowStage


_HANDLERS: Dict[Type, Callable[[SessionState, object], SessionState]] = {}


def _handles(event_type: Type):
    def register(fn):
        _HANDLERS[event_type] = fn
        return fn
    return register


def reduce(state: SessionState, event: object) -> SessionState:
    """Apply ``event`` to ``state`` and return the resulting state."""
    handler = _HANDLERS.get(type(event))
    if handler is None:
        raise TypeError(f"Unknown workflow event: {type(event).__name__}")
    return handler(state, event)


def _require_stage(state: SessionState, *stages: WorkflowStage) -> None:
    if state.stage not in stages:
        allowed = ", ".join(s.label for s in stages)
        raise StageError(
            f"This action is only available during {allowed} (current stage: {state.stage.label})."
        )


def _is_stale(state: SessionState, epoch: int, *stages: WorkflowStage) -> bool:
    """Whether a completion belongs to superseded work."""
    if epoch != state.epoch or state.stage not in stages:
        logger.debug("Discarding stale completion (epoch %s, stage %s)", epoch, state.stage.name)
        return True
    return False


def _with_project(state: SessionState, **changes) -> Project:
    return state.project.model_copy(update=changes)


# --- Story input and characters ---

@_handles(StartRequested)
def _start(state: SessionState, event: StartRequested) -> SessionState:
    _require_stage(state, WorkflowStage.WELCOME)
    return state.model_copy(update={"stage": WorkflowStage.STORY_INPUT, "error": None})


@_handles(StorySubmitted)
def _submit_story(state: SessionState, event: StorySubmitted) -> SessionState:
    _require_stage(state, WorkflowStage.STORY_INPUT)
    story = event.story.strip()
    if not story:
        raise InputValidationError("Please describe your story idea first.")
    return state.model_copy(update={
        "stage": WorkflowStage.CHARACTER_CREATION,
        "project": _with_project(state, story_idea=story),
        "error": None,
    })


@_handles(BackToStoryRequested)
def _back_to_story(state: SessionState, event: BackToStoryRequested) -> SessionState:
    _require_stage(state, WorkflowStage.CHARACTER_CREATION)
    return state.model_copy(update={"stage": WorkflowStage.STORY_INPUT})


@_handles(CharacterSaved)
def _save_character(state: SessionState, event: CharacterSaved) -> SessionState:
    _require_stage(state, WorkflowStage.CHARACTER_CREATION)
    character = event.character
    if not (character.name.strip() and character.appearance.strip() and character.personality.strip()):
        raise InputValidationError("A character needs a name, an appearance and a personality.")

    characters = list(state.project.characters)
    for position, existing in enumerate(characters):
        if existing.id == character.id:
            characters[position] = character
            break
    else:
        characters.append(character)
    return state.model_copy(update={"project": _with_project(state, characters=characters)})


@_handles(CharacterRemoved)
def _remove_character(state: SessionState, event: CharacterRemoved) -> SessionState:
    _require_stage(state, WorkflowStage.CHARACTER_CREATION)
    characters = [c for c in state.project.characters if c.id != event.character_id]
    return state.model_copy(update={"project": _with_project(state, characters=characters)})


@_handles(SuggestionStarted)
def _start_suggestion(state: SessionState, event: SuggestionStarted) -> SessionState:
    _require_stage(state, WorkflowStage.CHARACTER_CREATION)
    if state.suggesting_characters:
        return state
    return state.model_copy(update={"suggesting_characters": True, "error": None})


@_handles(CharactersSuggested)
def _characters_suggested(state: SessionState, event: CharactersSuggested) -> SessionState:
    if event.epoch != state.epoch or not state.suggesting_characters:
        return state
    if state.stage != WorkflowStage.CHARACTER_CREATION:
        # Stepped back to the story: drop the batch.
        return state.model_copy(update={"suggesting_characters": False})
    characters = list(state.project.characters) + list(event.characters)
    return state.model_copy(update={
        "project": _with_project(state, characters=characters),
        "suggesting_characters": False,
    })


@_handles(SuggestionFailed)
def _suggestion_failed(state: SessionState, event: SuggestionFailed) -> SessionState:
    if event.epoch != state.epoch or not state.suggesting_characters:
        return state
    update = {"suggesting_characters": False}
    if state.stage == WorkflowStage.CHARACTER_CREATION:
        update["error"] = event.message
    return state.model_copy(update=update)


@_handles(CharactersSubmitted)
def _submit_characters(state: SessionState, event: CharactersSubmitted) -> SessionState:
    _require_stage(state, WorkflowStage.CHARACTER_CREATION)
    if not state.project.characters:
        raise InputValidationError("Add at least one character before enriching the story.")
    return state.model_copy(update={
        "stage": WorkflowStage.STORY_ENRICHING,
        "suggesting_characters": False,
        "error": None,
    })


# --- Automatic stages ---

@_handles(StageWorkStarted)
def _stage_work_started(state: SessionState, event: StageWorkStarted) -> SessionState:
    if event.stage not in ASYNC_STAGES:
        raise ValueError(f"{event.stage.name} has no automatic work")
    if _is_stale(state, event.epoch, event.stage) or state.stage_work_running:
        return state
    return state.model_copy(update={"stage_work_running": True})


@_handles(StageWorkFinished)
def _stage_work_finished(state: SessionState, event: StageWorkFinished) -> SessionState:
    if event.epoch != state.epoch or not state.stage_work_running:
        return state
    return state.model_copy(update={"stage_work_running": False})


# --- Story approval ---

@_handles(StoryEnriched)
def _story_enriched(state: SessionState, event: StoryEnriched) -> SessionState:
    if event.regenerate:
        if _is_stale(state, event.epoch, WorkflowStage.STORY_APPROVAL):
            return state
        if state.story_loading is not StoryLoadingAction.REGENERATE:
            return state
    elif _is_stale(state, event.epoch, WorkflowStage.STORY_ENRICHING):
        return state
    return state.model_copy(update={
        "stage": WorkflowStage.STORY_APPROVAL,
        "project": _with_project(state, enriched_story=event.text),
        "story_loading": StoryLoadingAction.NONE,
        "stage_work_running": False,
    })


@_handles(StoryActionStarted)
def _start_story_action(state: SessionState, event: StoryActionStarted) -> SessionState:
    _require_stage(state, WorkflowStage.STORY_APPROVAL)
    if event.action is StoryLoadingAction.NONE:
        raise ValueError("StoryActionStarted needs a revise or regenerate action")
    if event.action is StoryLoadingAction.REVISE and not event.feedback.strip():
        raise InputValidationError("Tell us what to change before revising the story.")
    if state.story_loading is not StoryLoadingAction.NONE:
        return state
    return state.model_copy(update={"story_loading": event.action, "error": None})


@_handles(StoryRevised)
def _story_revised(state: SessionState, event: StoryRevised) -> SessionState:
    if _is_stale(state, event.epoch, WorkflowStage.STORY_APPROVAL):
        return state
    if state.story_loading is not StoryLoadingAction.REVISE:
        return state
    return state.model_copy(update={
        "project": _with_project(state, enriched_story=event.text),
        "story_loading": StoryLoadingAction.NONE,
    })


@_handles(StoryApproved)
def _approve_story(state: SessionState, event: StoryApproved) -> SessionState:
    _require_stage(state, WorkflowStage.STORY_APPROVAL)
    if state.story_loading is not StoryLoadingAction.NONE:
        return state
    return state.model_copy(update={"stage": WorkflowStage.STYLE_SELECTION, "error": None})


# --- Style, script and cover ---

@_handles(StyleSelected)
def _select_style(state: SessionState, event: StyleSelected) -> SessionState:
    _require_stage(state, WorkflowStage.STYLE_SELECTION)
    style = get_style(event.style)
    if style is None:
        raise InputValidationError(f'Style "{event.style}" not found.')
    return state.model_copy(update={
        "stage": WorkflowStage.GENERATING_SCRIPT,
        "project": _with_project(state, selected_style=style.name),
        "error": None,
    })


@_handles(ScriptGenerated)
def _script_generated(state: SessionState, event: ScriptGenerated) -> SessionState:
    if _is_stale(state, event.epoch, WorkflowStage.GENERATING_SCRIPT):
        return state
    return state.model_copy(update={
        "stage": WorkflowStage.GENERATING_COVER,
        "project": _with_project(
            state,
            comic_script=list(event.script),
            generated_panels=[None] * TOTAL_PANELS,
        ),
        "stage_work_running": False,
    })


@_handles(CoverGenerated)
def _cover_generated(state: SessionState, event: CoverGenerated) -> SessionState:
    if _is_stale(state, event.epoch, WorkflowStage.GENERATING_COVER):
        return state
    return state.model_copy(update={
        "stage": WorkflowStage.DISPLAY,
        "project": _with_project(state, comic_title=event.title, cover_image=event.image),
        "stage_work_running": False,
    })


@_handles(ComicResumed)
def _resume_comic(state: SessionState, event: ComicResumed) -> SessionState:
    _require_stage(state, WorkflowStage.STYLE_SELECTION)
    project = state.project
    if (
        not project.comic_script
        or len(project.generated_panels) != TOTAL_PANELS
        or project.cover_image is None
        or project.style is None
    ):
        raise StageError("There is no comic to resume yet. Pick a style to create one.")
    return state.model_copy(update={"stage": WorkflowStage.DISPLAY, "error": None})


# --- Panel generation ---

@_handles(PanelLoopStarted)
def _panel_loop_started(state: SessionState, event: PanelLoopStarted) -> SessionState:
    if _is_stale(state, event.epoch, WorkflowStage.DISPLAY) or state.panel_loop_running:
        return state
    return state.model_copy(update={"panel_loop_running": True, "error": None})


@_handles(PanelImageGenerated)
def _panel_image_generated(state: SessionState, event: PanelImageGenerated) -> SessionState:
    if _is_stale(state, event.epoch, WorkflowStage.DISPLAY):
        return state
    panels = state.project.generated_panels
    if not 0 <= event.panel_index < len(panels) or panels[event.panel_index] is not None:
        return state
    # Copy the latest slots so siblings written meanwhile are preserved.
    updated = list(panels)
    updated[event.panel_index] = event.image
    return state.model_copy(update={"project": _with_project(state, generated_panels=updated)})


@_handles(PanelLoopFinished)
def _panel_loop_finished(state: SessionState, event: PanelLoopFinished) -> SessionState:
    if event.epoch != state.epoch or not state.panel_loop_running:
        return state
    return state.model_copy(update={"panel_loop_running": False})


# --- Failures ---

@_handles(GatewayFailed)
def _gateway_failed(state: SessionState, event: GatewayFailed) -> SessionState:
    if _is_stale(state, event.epoch, event.stage):
        return state
    target = recovery_stage(state.stage)
    logger.info("Recovering from %s to %s: %s", state.stage.name, target.name, event.message)
    return state.model_copy(update={
        "stage": target,
        "error": event.message,
        "story_loading": StoryLoadingAction.NONE,
        "stage_work_running": False,
        "panel_loop_running": False,
        "editor": state.editor if target == WorkflowStage.DISPLAY else None,
    })


# --- Panel editor ---

@_handles(EditorOpened)
def _open_editor(state: SessionState, event: EditorOpened) -> SessionState:
    _require_stage(state, WorkflowStage.DISPLAY)
    panels = state.project.generated_panels
    if not 0 <= event.panel_index < len(panels):
        raise InputValidationError(f"There is no panel {event.panel_index + 1}.")
    if panels[event.panel_index] is None:
        raise InputValidationError(f"Panel {event.panel_index + 1} has not been generated yet.")
    return state.model_copy(update={"editor": PanelEditorState(panel_index=event.panel_index)})


def _require_editor(state: SessionState) -> PanelEditorState:
    if state.editor is None:
        raise StageError("No panel is open for editing.")
    return state.editor


@_handles(EditStarted)
def _start_edit(state: SessionState, event: EditStarted) -> SessionState:
    editor = _require_editor(state)
    if not event.instruction.strip():
        raise InputValidationError("Describe the change you want to make to the panel.")
    if editor.is_loading:
        return state
    return state.model_copy(update={
        "editor": editor.model_copy(update={"is_loading": True, "error": None}),
    })


def _is_stale_edit(state: SessionState, panel_index: int, epoch: int) -> bool:
    editor = state.editor
    return (
        epoch != state.epoch
        or editor is None
        or editor.panel_index != panel_index
        or not editor.is_loading
    )


@_handles(EditGenerated)
def _edit_generated(state: SessionState, event: EditGenerated) -> SessionState:
    if _is_stale_edit(state, event.panel_index, event.epoch):
        return state
    return state.model_copy(update={
        "editor": state.editor.model_copy(update={"draft_image": event.image, "is_loading": False}),
    })


@_handles(EditFailed)
def _edit_failed(state: SessionState, event: EditFailed) -> SessionState:
    if _is_stale_edit(state, event.panel_index, event.epoch):
        return state
    return state.model_copy(update={
        "editor": state.editor.model_copy(update={"error": event.message, "is_loading": False}),
    })


@_handles(EditDiscarded)
def _discard_edit(state: SessionState, event: EditDiscarded) -> SessionState:
    editor = _require_editor(state)
    return state.model_copy(update={
        "editor": editor.model_copy(update={"draft_image": None, "error": None}),
    })


@_handles(EditCommitted)
def _commit_edit(state: SessionState, event: EditCommitted) -> SessionState:
    editor = _require_editor(state)
    if editor.is_loading:
        raise StageError("Wait for the current edit to finish before saving.")
    if editor.draft_image is None:
        return state
    updated = list(state.project.generated_panels)
    updated[editor.panel_index] = editor.draft_image
    return state.model_copy(update={
        "project": _with_project(state, generated_panels=updated),
        "editor": None,
    })


@_handles(EditorClosed)
def _close_editor(state: SessionState, event: EditorClosed) -> SessionState:
    return state.model_copy(update={"editor": None})


# --- Session level ---

@_handles(ProjectImported)
def _project_imported(state: SessionState, event: ProjectImported) -> SessionState:
    return SessionState(
        session_id=state.session_id,
        epoch=state.epoch + 1,
        stage=WorkflowStage.DISPLAY,
        project=event.project,
    )


@_handles(ImportFailed)
def _import_failed(state: SessionState, event: ImportFailed) -> SessionState:
    return state.model_copy(update={
        "epoch": state.epoch + 1,
        "stage": WorkflowStage.WELCOME,
        "error": event.message,
        "story_loading": StoryLoadingAction.NONE,
        "suggesting_characters": False,
        "stage_work_running": False,
        "panel_loop_running": False,
        "editor": None,
    })


@_handles(ResetRequested)
def _reset(state: SessionState, event: ResetRequested) -> SessionState:
    return SessionState(session_id=state.session_id, epoch=state.epoch + 1)
