"""Editing a single generated panel with a free-text instruction."""

import logging
from typing import TYPE_CHECKING

from ..errors import GatewayError
from ..state.session import PanelEditorState, SessionState
from .transitions import (
    EditCommitted,
    EditDiscarded,
    EditFailed,
    EditGenerated,
    EditorClosed,
    EditorOpened,
    EditStarted,
)

if TYPE_CHECKING:
    from .workflow import ComicWorkflow

logger = logging.getLogger(__name__)


class PanelEditor:
    """Open one panel, try edits on a draft, then save or discard.

    Edits chain: a new instruction is applied to the current draft when there
    is one, otherwise to the committed image. Nothing reaches the comic until
    ``save``.
    """

    def __init__(self, workflow: "ComicWorkflow"):
        self.workflow = workflow

    @property
    def current(self) -> PanelEditorState | None:
        return self.workflow.state.editor

    def open(self, panel_index: int) -> SessionState:
        return self.workflow.dispatch(EditorOpened(panel_index=panel_index))

    def generate_edit(self, instruction: str) -> SessionState:
        """Apply ``instruction`` to the panel; a duplicate while loading is ignored."""
        wf = self.workflow
        started = wf.begin(EditStarted(instruction=instruction))
        if started is None:
            return wf.state

        editor = started.editor
        source = editor.draft_image or started.project.generated_panels[editor.panel_index]
        try:
            image = wf.gateway.edit_panel_image(source, instruction.strip())
        except GatewayError as e:
            logger.warning("Edit of panel %d failed: %s", editor.panel_index + 1, e)
            return wf.dispatch(EditFailed(
                panel_index=editor.panel_index, message=str(e), epoch=started.epoch,
            ))
        return wf.dispatch(EditGenerated(
            panel_index=editor.panel_index, image=image, epoch=started.epoch,
        ))

    def discard(self) -> SessionState:
        return self.workflow.dispatch(EditDiscarded())

    def save(self) -> SessionState:
        """Commit the draft into the comic and close the editor."""
        return self.workflow.dispatch(EditCommitted())

    def close(self) -> SessionState:
        return self.workflow.dispatch(EditorClosed())
