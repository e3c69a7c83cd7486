"""Tests for project file export and import."""

import json

import pytest

from comicgen.config import PROJECT_FILE_VERSION, PROJECT_FILENAME
from comicgen.errors import IncompatibleProjectError, PersistenceError
from comicgen.persistence import (
    export_project,
    load_project_file,
    parse_project,
    project_to_dict,
    save_project_file,
)
from comicgen.state.project import Project
from comicgen.state.session import WorkflowStage


class TestExport:
    def test_file_layout(self, sample_project):
        data = json.loads(export_project(sample_project))
        assert data["version"] == PROJECT_FILE_VERSION
        assert set(data) == {
            "version", "storyIdea", "characters", "enrichedStory", "comicScript",
            "selectedStyleName", "generatedPanels", "comicTitle", "coverImage",
        }
        assert data["selectedStyleName"] == "Western Comic Book"
        assert data["comicScript"][1]["dialogue"] == [{"character": "Robo", "speech": "Beep 2"}]

    def test_empty_slots_are_null(self, sample_project):
        panels = list(sample_project.generated_panels)
        panels[7] = None
        data = project_to_dict(sample_project.model_copy(update={"generated_panels": panels}))
        assert data["generatedPanels"][7] is None

    def test_requires_a_style(self):
        with pytest.raises(PersistenceError):
            export_project(Project(story_idea="A heist"))

    def test_round_trip(self, sample_project):
        assert parse_project(export_project(sample_project)) == sample_project


class TestImport:
    def valid(self, sample_project, **overrides):
        data = project_to_dict(sample_project)
        data.update(overrides)
        return json.dumps(data)

    @pytest.mark.parametrize("raw", ["not json", "[1, 2, 3]", b"\x80\x81"])
    def test_corrupted_file(self, raw):
        with pytest.raises(PersistenceError, match="Invalid or corrupted project file."):
            parse_project(raw)

    @pytest.mark.parametrize("version", [None, 1, "2"])
    def test_wrong_version(self, sample_project, version):
        with pytest.raises(IncompatibleProjectError, match="older version of ComicGen"):
            parse_project(self.valid(sample_project, version=version))

    @pytest.mark.parametrize("field, value", [
        ("storyIdea", ""),
        ("characters", None),
        ("selectedStyleName", ""),
    ])
    def test_missing_required_fields(self, sample_project, field, value):
        with pytest.raises(PersistenceError, match="Invalid or corrupted project file."):
            parse_project(self.valid(sample_project, **{field: value}))

    def test_empty_cast_is_accepted(self, sample_project):
        project = parse_project(self.valid(sample_project, characters=[]))
        assert project.characters == []

    def test_unknown_style(self, sample_project):
        with pytest.raises(PersistenceError, match='Style "Cubism" not found.'):
            parse_project(self.valid(sample_project, selectedStyleName="Cubism"))

    def test_malformed_fields(self, sample_project):
        with pytest.raises(PersistenceError):
            parse_project(self.valid(sample_project, comicScript="twenty panels"))

    def test_file_helpers(self, sample_project, tmp_path):
        path = save_project_file(sample_project, tmp_path / "exports")
        assert path.name == PROJECT_FILENAME
        assert load_project_file(path) == sample_project

    def test_missing_file(self, tmp_path):
        with pytest.raises(PersistenceError):
            load_project_file(tmp_path / "nope.json")


class TestWorkflowImport:
    def test_successful_import_opens_display(self, workflow, sample_project):
        before = workflow.state
        state = workflow.import_project(export_project(sample_project))
        assert state.stage == WorkflowStage.DISPLAY
        assert state.project == sample_project
        assert state.epoch == before.epoch + 1
        assert state.error is None

    def test_failed_import_returns_to_welcome(self, finished_workflow):
        before = finished_workflow.state
        state = finished_workflow.import_project("{broken")
        assert state.stage == WorkflowStage.WELCOME
        assert state.error == "Invalid or corrupted project file."
        assert state.project == before.project
        assert state.epoch == before.epoch + 1

    def test_import_then_export_matches(self, workflow, sample_project):
        raw = export_project(sample_project)
        workflow.import_project(raw)
        assert json.loads(workflow.export_project()) == json.loads(raw)

    def test_imported_comic_finishes_missing_panels(self, workflow, gateway, sample_project):
        panels = list(sample_project.generated_panels)
        panels[0] = None
        workflow.import_project(export_project(
            sample_project.model_copy(update={"generated_panels": panels})
        ))
        assert workflow.has_pending_work
        state = workflow.run_pending()
        assert state.project.generated_panels[0] == "image:Panel 1"
        assert gateway.count("generate_panel_image") == 1
