"""Project and session state module."""

from .project import Character, DialogueLine, PanelScript, Project
from .session import PanelEditorState, SessionState, StoryLoadingAction, WorkflowStage

__all__ = [
    "Character",
    "DialogueLine",
    "PanelScript",
    "Project",
    "PanelEditorState",
    "SessionState",
    "StoryLoadingAction",
    "WorkflowStage",
]
