"""Smoke tests for ComicGen.

These tests verify core functionality without requiring an OpenAI API key.
They test config defaults, prompt loading, styles, logging, text layout and
the terminal UI.
"""

import io
import json
import logging

import pytest
from rich.console import Console
from rich.logging import RichHandler

from comicgen.config import (
    PANELS_PER_PAGE,
    TOTAL_PAGES,
    TOTAL_PANELS,
    TOTAL_STORY_PAGES,
    GatewayConfig,
)
from comicgen.drawing import get_font, wrap_text
from comicgen.gateway import MockComicGateway, create_gateway
from comicgen.logging import InteractionLogger, setup_logging
from comicgen.prompt_loader import PROMPTS_DIR, load_prompt
from comicgen.state.session import WorkflowStage, recovery_stage
from comicgen.styles import STYLES, ComicStyle, get_style, list_styles
from comicgen.ui import TerminalUI


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

class TestConfig:
    def test_comic_layout(self):
        assert TOTAL_PANELS == TOTAL_STORY_PAGES * PANELS_PER_PAGE == 20
        assert TOTAL_PAGES == 7

    def test_gateway_config_defaults(self):
        cfg = GatewayConfig()
        assert cfg.llm_model == "gpt-4o-mini"
        assert cfg.panel_image_size == "1536x1024"

    def test_gateway_config_override(self):
        cfg = GatewayConfig(image_model="dall-e-3", image_quality="high")
        assert cfg.image_model == "dall-e-3"
        assert cfg.llm_temperature == GatewayConfig().llm_temperature


class TestRecoveryStage:
    @pytest.mark.parametrize("stage, expected", [
        (WorkflowStage.STORY_ENRICHING, WorkflowStage.STORY_APPROVAL),
        (WorkflowStage.STORY_APPROVAL, WorkflowStage.STORY_APPROVAL),
        (WorkflowStage.GENERATING_SCRIPT, WorkflowStage.STYLE_SELECTION),
        (WorkflowStage.DISPLAY, WorkflowStage.STYLE_SELECTION),
    ])
    def test_recovery(self, stage, expected):
        assert recovery_stage(stage) == expected


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

class TestPromptLoader:
    def test_load_and_substitute(self, tmp_path):
        prompt_file = tmp_path / "test.md"
        prompt_file.write_text("Hello {name}, welcome to {place}!")
        result = load_prompt(prompt_file, name="Alice", place="Wonderland")
        assert result == "Hello Alice, welcome to Wonderland!"

    def test_load_without_substitution(self, tmp_path):
        prompt_file = tmp_path / "test.md"
        prompt_file.write_text("No variables here.")
        assert load_prompt(prompt_file) == "No variables here."

    def test_bundled_prompts_fill_in(self):
        prompt = load_prompt(
            "comic_script.user.md", total_panels=TOTAL_PANELS, characters="Robo: tin", story="A tale"
        )
        assert "A tale" in prompt
        assert str(TOTAL_PANELS) in prompt

    def test_all_templates_present(self):
        names = {path.name for path in PROMPTS_DIR.glob("*.md")}
        assert {"enrich_story.user.md", "revise_story.user.md", "comic_title.user.md",
                "panel_image.md", "cover_image.md"} <= names


# ---------------------------------------------------------------------------
# Styles
# ---------------------------------------------------------------------------

class TestStyles:
    def test_every_enum_member_has_a_style(self):
        assert {style.name for style in STYLES} == set(ComicStyle)

    def test_lookup_by_name(self):
        assert get_style("Western Comic Book").name is ComicStyle.WESTERN_COMIC
        assert get_style(ComicStyle.INDIAN_NOIR).name is ComicStyle.INDIAN_NOIR

    def test_unknown_style(self):
        assert get_style("Cubism") is None
        assert get_style(None) is None

    def test_list_styles(self):
        listing = list_styles()
        assert listing.startswith("Available Styles:")
        assert "[1]" in listing


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

class TestInteractionLogger:
    def test_creates_session_file(self, tmp_path):
        logger = InteractionLogger("My Comic!", log_dir=tmp_path / "logs")
        assert logger.log_file.exists()
        assert logger.log_file.name.startswith("My_Comic_")
        data = json.loads(logger.log_file.read_text(encoding="utf-8"))
        assert data["session_name"] == "My Comic!"
        assert data["interactions"] == []

    def test_text_interaction(self, tmp_path):
        logger = InteractionLogger(log_dir=tmp_path)
        logger.log_text_interaction(
            capability="revise_story", prompt="p", response="r",
            model="gpt-4o-mini", temperature=0.8, max_tokens=100,
        )
        data = json.loads(logger.log_file.read_text(encoding="utf-8"))
        entry = data["interactions"][0]
        assert entry["type"] == "text_generation"
        assert entry["response"]["raw"] == "r"
        assert entry["success"] is True


class TestSetupLogging:
    def test_installs_rich_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("debug")
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0], RichHandler)
            assert logging.getLogger("openai").level == logging.WARNING
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)


# ---------------------------------------------------------------------------
# Gateway selection
# ---------------------------------------------------------------------------

class TestCreateGateway:
    def test_mock_requested(self):
        assert isinstance(create_gateway(use_mock=True), MockComicGateway)

    def test_falls_back_to_mock_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        assert isinstance(create_gateway(), MockComicGateway)


# ---------------------------------------------------------------------------
# Text layout
# ---------------------------------------------------------------------------

class TestTextLayout:
    def test_wrap_text(self):
        font = get_font(16)
        lines = wrap_text("This is a long sentence that should be wrapped", font, 100)
        assert len(lines) > 1
        assert " ".join(lines) == "This is a long sentence that should be wrapped"

    def test_wrap_empty(self):
        assert wrap_text("", get_font(16), 100) == []


# ---------------------------------------------------------------------------
# Terminal UI
# ---------------------------------------------------------------------------

@pytest.fixture
def ui():
    return TerminalUI(Console(file=io.StringIO(), width=100, record=True))


class TestTerminalUI:
    def test_show_comic(self, ui, sample_project):
        ui.show_comic(sample_project)
        text = ui.console.export_text()
        assert "Robo Paints" in text
        assert "Beep 2" in text

    def test_show_styles(self, ui):
        ui.show_styles()
        text = ui.console.export_text()
        assert all(style.name.value in text for style in STYLES)

    def test_choose(self, ui, monkeypatch):
        monkeypatch.setattr(ui, "ask", lambda message, default="": "2")
        assert ui.choose("Pick", ["a", "b"]) == 1

    @pytest.mark.parametrize("answer", ["0", "3", "abc"])
    def test_choose_invalid(self, ui, monkeypatch, answer):
        monkeypatch.setattr(ui, "ask", lambda message, default="": answer)
        assert ui.choose("Pick", ["a", "b"]) is None
