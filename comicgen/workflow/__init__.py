"""Workflow state machine and its driver."""

from .panel_editor import PanelEditor
from .panel_loop import PanelGenerationLoop
from .transitions import reduce
from .workflow import ComicWorkflow, generation_message

__all__ = [
    "ComicWorkflow",
    "PanelEditor",
    "PanelGenerationLoop",
    "generation_message",
    "reduce",
]
