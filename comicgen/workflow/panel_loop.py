"""Sequential generation of panel images once the comic is on display."""

import logging
from typing import TYPE_CHECKING, Iterator

from ..errors import GatewayError
from ..state.session import SessionState, WorkflowStage
from .transitions import (
    GatewayFailed,
    PanelImageGenerated,
    PanelLoopFinished,
    PanelLoopStarted,
)

if TYPE_CHECKING:
    from .workflow import ComicWorkflow

logger = logging.getLogger(__name__)


class PanelGenerationLoop:
    """Fills the empty image slots of the current comic, one panel at a time.

    The loop re-reads the session before every panel, so it stops as soon as
    the comic is reset, replaced by an import or left through a failure, and
    it never overwrites a slot that already holds an image. Only one loop
    runs per session: a second ``run`` while one is active returns at once.
    """

    def __init__(self, workflow: "ComicWorkflow"):
        self.workflow = workflow

    def run(self) -> Iterator[SessionState]:
        """Generate missing panels, yielding the session after each one."""
        wf = self.workflow
        state = wf.state
        if state.stage != WorkflowStage.DISPLAY or not state.project.missing_panel_indices():
            return

        epoch = state.epoch
        started = wf.begin(PanelLoopStarted(epoch=epoch))
        if started is None:
            logger.debug("Panel loop already running for session %s", state.session_id)
            return

        style = started.project.style
        logger.info("Generating %d missing panels", len(started.project.missing_panel_indices()))
        try:
            for index in range(len(started.project.comic_script)):
                current = wf.state
                if current.epoch != epoch or current.stage != WorkflowStage.DISPLAY:
                    logger.info("Comic changed, stopping panel generation at panel %d", index + 1)
                    return

                panels = current.project.generated_panels
                if index >= len(panels) or panels[index] is not None:
                    continue

                description = current.project.comic_script[index].description
                try:
                    image = wf.gateway.generate_panel_image(description, style.prompt)
                except GatewayError as e:
                    logger.warning("Panel %d failed: %s", index + 1, e)
                    yield wf.dispatch(GatewayFailed(
                        message=(
                            f"Failed to generate panel {index + 1}. "
                            "Resume the comic to try again or create a new one."
                        ),
                        epoch=epoch,
                        stage=WorkflowStage.DISPLAY,
                    ))
                    return

                yield wf.dispatch(PanelImageGenerated(panel_index=index, image=image, epoch=epoch))
        finally:
            wf.dispatch(PanelLoopFinished(epoch=epoch))
