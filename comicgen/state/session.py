"""Session state for the comic creation wizard.

A ``SessionState`` is never mutated in place: every transition in
``comicgen.workflow.transitions`` returns a new instance. Only the
workflow driver swaps the current state.
"""

import uuid
from enum import Enum, IntEnum

from pydantic import BaseModel, ConfigDict, Field

from .project import Project


class WorkflowStage(IntEnum):
    """Linearly ordered wizard stages."""

    WELCOME = 0
    STORY_INPUT = 1
    CHARACTER_CREATION = 2
    STORY_ENRICHING = 3
    STORY_APPROVAL = 4
    STYLE_SELECTION = 5
    GENERATING_SCRIPT = 6
    GENERATING_COVER = 7
    DISPLAY = 8

    @property
    def label(self) -> str:
        return self.name.replace("_", " ").title()


# Stages whose entry runs an AI call without user input.
ASYNC_STAGES = frozenset({
    WorkflowStage.STORY_ENRICHING,
    WorkflowStage.GENERATING_SCRIPT,
    WorkflowStage.GENERATING_COVER,
})


def recovery_stage(stage: WorkflowStage) -> WorkflowStage:
    """Nearest interactive stage to fall back to after a failure in ``stage``."""
    if stage >= WorkflowStage.STYLE_SELECTION:
        return WorkflowStage.STYLE_SELECTION
    return WorkflowStage.STORY_APPROVAL


class StoryLoadingAction(str, Enum):
    """Which story approval action is in flight."""

    NONE = "none"
    REVISE = "revise"
    REGENERATE = "regenerate"


class PanelEditorState(BaseModel):
    """An open editor for one generated panel."""

    model_config = ConfigDict(frozen=True)

    panel_index: int
    draft_image: str | None = Field(default=None, description="Uncommitted edit result")
    is_loading: bool = False
    error: str | None = None


class SessionState(BaseModel):
    """Stage, project snapshot and transient UI flags for one session."""

    model_config = ConfigDict(frozen=True)

    session_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    epoch: int = Field(default=0, description="Bumped whenever in-flight work is superseded")
    stage: WorkflowStage = WorkflowStage.WELCOME
    project: Project = Field(default_factory=Project)
    error: str | None = None
    story_loading: StoryLoadingAction = StoryLoadingAction.NONE
    suggesting_characters: bool = False
    stage_work_running: bool = Field(default=False, description="AI call of the current automatic stage in flight")
    panel_loop_running: bool = False
    editor: PanelEditorState | None = None

    @property
    def is_busy(self) -> bool:
        """Whether any AI call is in flight for this session."""
        return (
            self.stage in ASYNC_STAGES
            or self.story_loading is not StoryLoadingAction.NONE
            or self.suggesting_characters
            or self.panel_loop_running
            or (self.editor is not None and self.editor.is_loading)
        )

    def summary(self) -> dict:
        """Compact, image-free view of the session for progress reporting."""
        project = self.project
        return {
            "session_id": self.session_id,
            "stage": self.stage.name,
            "error": self.error,
            "story_loading": self.story_loading.value,
            "panels_done": sum(1 for p in project.generated_panels if p is not None),
            "panels_total": len(project.comic_script),
            "has_cover": project.cover_image is not None,
            "is_generating": project.is_generating,
        }
