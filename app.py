#!/usr/bin/env python3
"""ComicGen - Web API

One ComicWorkflow per session. Actions are JSON endpoints; the automatic
stages (story enrichment, script, cover, panels) run inside the
``/api/progress-stream`` endpoint, which streams the session's progress as
server-sent events.
"""

import functools
import io
import json
import logging
import os
import threading
from typing import Callable, Optional

from dotenv import load_dotenv
from flask import Flask, Response, jsonify, request, send_file

from comicgen.comic_book import ComicBookRenderer
from comicgen.config import PROJECT_FILENAME
from comicgen.errors import (
    ComicGenError,
    GatewayError,
    InputValidationError,
    PersistenceError,
    StageError,
)
from comicgen.gateway import ComicGateway, create_gateway
from comicgen.logging import setup_logging
from comicgen.state.session import SessionState
from comicgen.styles import STYLES
from comicgen.workflow import ComicWorkflow, generation_message

logger = logging.getLogger("comicgen.app")

_STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


def state_payload(state: SessionState, include_images: bool = False) -> dict:
    """Session as JSON: the summary plus project text, images on request."""
    project = state.project
    exclude = None if include_images else {"generated_panels", "cover_image"}
    payload = state.summary()
    payload.update({
        "epoch": state.epoch,
        "suggesting_characters": state.suggesting_characters,
        "stage_work_running": state.stage_work_running,
        "panel_loop_running": state.panel_loop_running,
        "editor": state.editor.model_dump(mode="json") if state.editor else None,
        "project": project.model_dump(by_alias=True, mode="json", exclude=exclude),
    })
    if not include_images:
        payload["project"]["generatedPanelsReady"] = [p is not None for p in project.generated_panels]
        if state.editor is not None:
            payload["editor"]["draft_image"] = state.editor.draft_image is not None
    return payload


def create_app(gateway_factory: Optional[Callable[[], ComicGateway]] = None) -> Flask:
    """Build the Flask app.

    Args:
        gateway_factory: Creates the gateway for each new session. Defaults to
            OpenAI when ``OPENAI_API_KEY`` is set, the mock otherwise.
    """
    app = Flask(__name__)
    sessions: dict[str, ComicWorkflow] = {}
    sessions_lock = threading.Lock()
    make_gateway = gateway_factory or (
        lambda: create_gateway(use_mock=os.getenv("COMICGEN_MOCK") == "1")
    )

    def with_workflow(view):
        """Resolve ``session_id`` from the JSON body or query string."""
        @functools.wraps(view)
        def wrapper():
            data = request.get_json(silent=True)
            if not isinstance(data, dict):
                data = {}
            session_id = data.get("session_id") or request.args.get("session_id") \
                or request.form.get("session_id")
            if not session_id:
                return jsonify({"error": "Missing session_id"}), 400
            with sessions_lock:
                workflow = sessions.get(session_id)
            if workflow is None:
                return jsonify({"error": "Session not found"}), 404
            return view(workflow, data)
        return wrapper

    @app.errorhandler(InputValidationError)
    def handle_invalid_input(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(StageError)
    def handle_wrong_stage(e):
        return jsonify({"error": str(e)}), 409

    @app.errorhandler(PersistenceError)
    def handle_persistence(e):
        return jsonify({"error": str(e)}), 400

    @app.errorhandler(GatewayError)
    def handle_gateway(e):
        return jsonify({"error": str(e)}), 502

    def respond(workflow: ComicWorkflow):
        return jsonify(state_payload(workflow.state))

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    @app.route("/api/styles")
    def list_styles():
        """List available comic styles."""
        return jsonify([style.model_dump(mode="json") for style in STYLES])

    @app.route("/api/sessions", methods=["POST"])
    def create_session():
        workflow = ComicWorkflow(make_gateway())
        session_id = workflow.state.session_id
        with sessions_lock:
            sessions[session_id] = workflow
        logger.info("Created session %s", session_id)
        return jsonify(state_payload(workflow.state)), 201

    @app.route("/api/session")
    @with_workflow
    def get_session(workflow, data):
        include_images = request.args.get("images") == "1"
        return jsonify(state_payload(workflow.state, include_images=include_images))

    @app.route("/api/reset", methods=["POST"])
    @with_workflow
    def reset(workflow, data):
        workflow.reset()
        return respond(workflow)

    # ------------------------------------------------------------------
    # Story and characters
    # ------------------------------------------------------------------

    @app.route("/api/start", methods=["POST"])
    @with_workflow
    def start(workflow, data):
        workflow.start()
        return respond(workflow)

    @app.route("/api/story", methods=["POST"])
    @with_workflow
    def submit_story(workflow, data):
        workflow.submit_story(data.get("story", ""))
        return respond(workflow)

    @app.route("/api/story/back", methods=["POST"])
    @with_workflow
    def back_to_story(workflow, data):
        workflow.back_to_story()
        return respond(workflow)

    @app.route("/api/characters", methods=["POST"])
    @with_workflow
    def save_character(workflow, data):
        character = workflow.save_character(
            name=data.get("name", ""),
            appearance=data.get("appearance", ""),
            personality=data.get("personality", ""),
            backstory=data.get("backstory", ""),
            character_id=data.get("id"),
        )
        payload = state_payload(workflow.state)
        payload["character"] = character.model_dump(mode="json")
        return jsonify(payload)

    @app.route("/api/characters/remove", methods=["POST"])
    @with_workflow
    def remove_character(workflow, data):
        workflow.remove_character(data.get("id", ""))
        return respond(workflow)

    @app.route("/api/characters/suggest", methods=["POST"])
    @with_workflow
    def suggest_characters(workflow, data):
        workflow.suggest_characters()
        return respond(workflow)

    @app.route("/api/characters/submit", methods=["POST"])
    @with_workflow
    def submit_characters(workflow, data):
        workflow.submit_characters()
        return respond(workflow)

    # ------------------------------------------------------------------
    # Story approval and style
    # ------------------------------------------------------------------

    @app.route("/api/story/approve", methods=["POST"])
    @with_workflow
    def approve_story(workflow, data):
        workflow.approve_story()
        return respond(workflow)

    @app.route("/api/story/revise", methods=["POST"])
    @with_workflow
    def revise_story(workflow, data):
        workflow.revise_story(data.get("feedback", ""))
        return respond(workflow)

    @app.route("/api/story/regenerate", methods=["POST"])
    @with_workflow
    def regenerate_story(workflow, data):
        workflow.regenerate_story()
        return respond(workflow)

    @app.route("/api/style", methods=["POST"])
    @with_workflow
    def select_style(workflow, data):
        workflow.select_style(data.get("style", ""))
        return respond(workflow)

    @app.route("/api/resume", methods=["POST"])
    @with_workflow
    def resume_comic(workflow, data):
        workflow.resume_comic()
        return respond(workflow)

    @app.route("/api/progress-stream", methods=["POST"])
    @with_workflow
    def progress_stream(workflow, data):
        """Run the automatic stages and stream progress events."""

        def generate():
            try:
                for tick, state in enumerate(workflow.steps()):
                    event = {"type": "progress", "message": generation_message(tick)}
                    event.update(state.summary())
                    yield f"data: {json.dumps(event)}\n\n"
            except ComicGenError as e:
                logger.exception("Progress stream failed")
                yield f"data: {json.dumps({'type': 'error', 'error': str(e)})}\n\n"
                return
            done = {"type": "done"}
            done.update(workflow.state.summary())
            yield f"data: {json.dumps(done)}\n\n"

        return Response(generate(), mimetype="text/event-stream", headers=_STREAM_HEADERS)

    # ------------------------------------------------------------------
    # Panel editor
    # ------------------------------------------------------------------

    @app.route("/api/editor/open", methods=["POST"])
    @with_workflow
    def open_editor(workflow, data):
        try:
            panel_index = int(data.get("panel_index"))
        except (TypeError, ValueError):
            return jsonify({"error": "panel_index must be a number"}), 400
        workflow.editor.open(panel_index)
        return respond(workflow)

    @app.route("/api/editor/edit", methods=["POST"])
    @with_workflow
    def generate_edit(workflow, data):
        state = workflow.editor.generate_edit(data.get("instruction", ""))
        payload = state_payload(state)
        if state.editor is not None:
            payload["editor"]["draft_image"] = state.editor.draft_image
        return jsonify(payload)

    @app.route("/api/editor/discard", methods=["POST"])
    @with_workflow
    def discard_edit(workflow, data):
        workflow.editor.discard()
        return respond(workflow)

    @app.route("/api/editor/save", methods=["POST"])
    @with_workflow
    def save_edit(workflow, data):
        workflow.editor.save()
        return respond(workflow)

    @app.route("/api/editor/close", methods=["POST"])
    @with_workflow
    def close_editor(workflow, data):
        workflow.editor.close()
        return respond(workflow)

    # ------------------------------------------------------------------
    # Files
    # ------------------------------------------------------------------

    @app.route("/api/project")
    @with_workflow
    def download_project(workflow, data):
        return Response(
            workflow.export_project(),
            mimetype="application/json",
            headers={"Content-Disposition": f"attachment; filename={PROJECT_FILENAME}"},
        )

    @app.route("/api/project/import", methods=["POST"])
    @with_workflow
    def import_project(workflow, data):
        upload = request.files.get("file")
        raw = upload.read() if upload else request.get_data()
        state = workflow.import_project(raw)
        status = 400 if state.error else 200
        return jsonify(state_payload(state)), status

    @app.route("/api/comic.pdf")
    @with_workflow
    def download_pdf(workflow, data):
        project = workflow.project
        if not project.comic_script or project.is_generating:
            return jsonify({"error": "The comic is still being generated."}), 409
        pdf = ComicBookRenderer(project).render_pdf()
        return send_file(
            io.BytesIO(pdf),
            mimetype="application/pdf",
            as_attachment=True,
            download_name="comic-book.pdf",
        )

    return app


load_dotenv()
app = create_app()


if __name__ == "__main__":
    setup_logging(os.getenv("COMICGEN_LOG_LEVEL", "INFO"))
    app.run(debug=True, port=5000, threaded=True)
