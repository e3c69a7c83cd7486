"""Tests for the Flask web API."""

import io
import json

import pytest

from app import create_app
from comicgen.config import TOTAL_PANELS
from comicgen.persistence import export_project


@pytest.fixture
def client(gateway):
    app = create_app(lambda: gateway)
    app.config["TESTING"] = True
    return app.test_client()


@pytest.fixture
def session_id(client):
    response = client.post("/api/sessions")
    assert response.status_code == 201
    return response.get_json()["session_id"]


def post(client, path, session_id, **data):
    return client.post(path, json={"session_id": session_id, **data})


def stream_events(client, session_id):
    response = post(client, "/api/progress-stream", session_id)
    assert response.mimetype == "text/event-stream"
    return [
        json.loads(line[len("data: "):])
        for line in response.get_data(as_text=True).splitlines()
        if line.startswith("data: ")
    ]


def reach_style_selection(client, session_id):
    post(client, "/api/start", session_id)
    post(client, "/api/story", session_id, story="A robot learns to paint")
    post(client, "/api/characters", session_id,
         name="Robo", appearance="tin robot", personality="curious")
    post(client, "/api/characters/submit", session_id)
    stream_events(client, session_id)
    post(client, "/api/story/approve", session_id)


def create_comic(client, session_id):
    reach_style_selection(client, session_id)
    post(client, "/api/style", session_id, style="Western Comic Book")
    return stream_events(client, session_id)


class TestSessions:
    def test_new_session_starts_on_welcome(self, client):
        data = client.post("/api/sessions").get_json()
        assert data["stage"] == "WELCOME"
        assert data["project"]["characters"] == []

    def test_missing_session_id(self, client):
        assert client.post("/api/start", json={}).status_code == 400

    def test_unknown_session(self, client):
        assert post(client, "/api/start", "no-such-session").status_code == 404

    def test_styles(self, client):
        names = [style["name"] for style in client.get("/api/styles").get_json()]
        assert "Western Comic Book" in names


class TestErrors:
    def test_wrong_stage_is_conflict(self, client, session_id):
        response = post(client, "/api/story", session_id, story="Too early")
        assert response.status_code == 409
        assert response.get_json()["error"]

    def test_invalid_input_is_bad_request(self, client, session_id):
        post(client, "/api/start", session_id)
        response = post(client, "/api/story", session_id, story="   ")
        assert response.status_code == 400

    def test_unknown_style(self, client, session_id):
        reach_style_selection(client, session_id)
        response = post(client, "/api/style", session_id, style="Cubism")
        assert response.status_code == 400
        assert response.get_json()["error"] == 'Style "Cubism" not found.'

    def test_failure_is_reported_in_state(self, client, session_id, gateway):
        gateway.failures["enrich_story"] = "Failed to enrich the story. Please try again."
        post(client, "/api/start", session_id)
        post(client, "/api/story", session_id, story="A robot learns to paint")
        post(client, "/api/characters", session_id,
             name="Robo", appearance="tin robot", personality="curious")
        post(client, "/api/characters/submit", session_id)
        events = stream_events(client, session_id)

        assert events[-1]["type"] == "done"
        assert events[-1]["stage"] == "STORY_APPROVAL"
        assert events[-1]["error"] == "Failed to enrich the story. Please try again."


class TestComicFlow:
    def test_full_flow(self, client, session_id):
        events = create_comic(client, session_id)

        assert [e["type"] for e in events[:-1]] == ["progress"] * len(events[:-1])
        assert events[-1]["type"] == "done"
        assert events[-1]["stage"] == "DISPLAY"
        assert events[-1]["panels_done"] == TOTAL_PANELS
        assert not events[-1]["is_generating"]

        state = client.get(f"/api/session?session_id={session_id}").get_json()
        assert state["project"]["comicTitle"] == "The Test Comic"
        assert state["project"]["generatedPanelsReady"] == [True] * TOTAL_PANELS
        assert "generatedPanels" not in state["project"]

    def test_session_with_images(self, client, session_id):
        create_comic(client, session_id)
        state = client.get(f"/api/session?session_id={session_id}&images=1").get_json()
        assert state["project"]["generatedPanels"][0] == "image:Panel 1"

    def test_suggestions(self, client, session_id):
        post(client, "/api/start", session_id)
        post(client, "/api/story", session_id, story="A heist")
        data = post(client, "/api/characters/suggest", session_id).get_json()
        names = [c["name"] for c in data["project"]["characters"]]
        assert names == ["Suggested Sam", "Suggested Sue"]

        removed = post(client, "/api/characters/remove", session_id,
                       id=data["project"]["characters"][0]["id"]).get_json()
        assert [c["name"] for c in removed["project"]["characters"]] == ["Suggested Sue"]

    def test_pdf(self, client, session_id):
        create_comic(client, session_id)
        response = client.get(f"/api/comic.pdf?session_id={session_id}")
        assert response.status_code == 200
        assert response.mimetype == "application/pdf"
        assert response.data.startswith(b"%PDF")

    def test_pdf_while_generating(self, client, session_id):
        assert client.get(f"/api/comic.pdf?session_id={session_id}").status_code == 409


class TestEditor:
    def test_edit_and_save(self, client, session_id):
        create_comic(client, session_id)
        post(client, "/api/editor/open", session_id, panel_index=0)
        data = post(client, "/api/editor/edit", session_id, instruction="add a hat").get_json()
        assert data["editor"]["draft_image"] == "image:Panel 1+add a hat"

        saved = post(client, "/api/editor/save", session_id).get_json()
        assert saved["editor"] is None
        state = client.get(f"/api/session?session_id={session_id}&images=1").get_json()
        assert state["project"]["generatedPanels"][0] == "image:Panel 1+add a hat"

    def test_bad_panel_index(self, client, session_id):
        create_comic(client, session_id)
        response = post(client, "/api/editor/open", session_id, panel_index="first")
        assert response.status_code == 400


class TestProjectFiles:
    def test_download(self, client, session_id):
        create_comic(client, session_id)
        response = client.get(f"/api/project?session_id={session_id}")
        assert "attachment" in response.headers["Content-Disposition"]
        data = json.loads(response.data)
        assert data["version"] == 2
        assert data["selectedStyleName"] == "Western Comic Book"

    def test_upload(self, client, session_id, sample_project):
        response = client.post(
            "/api/project/import",
            data={
                "session_id": session_id,
                "file": (io.BytesIO(export_project(sample_project).encode()), "comic.json"),
            },
            content_type="multipart/form-data",
        )
        assert response.status_code == 200
        data = response.get_json()
        assert data["stage"] == "DISPLAY"
        assert data["project"]["comicTitle"] == "Robo Paints"

    def test_bad_upload(self, client, session_id):
        response = client.post(
            "/api/project/import",
            data={"session_id": session_id, "file": (io.BytesIO(b"{broken"), "comic.json")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400
        assert response.get_json()["error"] == "Invalid or corrupted project file."
