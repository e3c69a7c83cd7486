"""A gateway that works offline, for demos and tests without an API key."""

import hashlib
import logging
from typing import List

from PIL import Image, ImageDraw

from ..config import COVER_IMAGE_SIZE, PANEL_IMAGE_SIZE, TOTAL_PANELS
from ..drawing import decode_image, draw_wrapped, encode_png, get_font
from ..state.project import Character, DialogueLine, PanelScript, new_suggestion_ids
from .base import ComicGateway, CoverArt

logger = logging.getLogger(__name__)

_PALETTE = ["#f4d35e", "#ee964b", "#f95738", "#0d3b66", "#83c5be", "#b5838d"]

_SUGGESTED_CAST = [
    ("Captain Vega", "tall woman in a battered flight jacket with a silver prosthetic arm",
     "fearless, stubborn, secretly sentimental",
     "Former cargo pilot who lost her ship and her crew in the same night."),
    ("Milo Quill", "wiry teenager with ink-stained fingers and oversized goggles",
     "curious, talkative, brilliant with machines",
     "Grew up in a repair shop and has never met a lock he could not open."),
    ("The Archivist", "hooded figure in grey robes with a glowing lantern",
     "calm, cryptic, quietly dangerous",
     "Keeper of forgotten records who knows more than anyone should."),
]


def _size(size: str) -> tuple[int, int]:
    width, height = size.split("x")
    # Placeholders are drawn at a quarter of the real resolution
    return int(width) // 4, int(height) // 4


def _placeholder(size: str, label: str, body: str) -> str:
    """Draw a flat-colored card with a label and wrapped text."""
    width, height = _size(size)
    color = _PALETTE[int(hashlib.md5(body.encode()).hexdigest(), 16) % len(_PALETTE)]
    image = Image.new("RGB", (width, height), color)
    draw = ImageDraw.Draw(image)
    margin = max(8, width // 20)
    draw.rectangle([margin // 2, margin // 2, width - margin // 2, height - margin // 2],
                   outline="black", width=3)
    title_font = get_font(max(12, height // 10))
    draw.text((margin, margin), label, font=title_font, fill="black")
    draw_wrapped(draw, body, (margin, margin + height // 6, width - margin, height - margin),
                 get_font(max(10, height // 18)))
    return encode_png(image)


class MockComicGateway(ComicGateway):
    """Deterministic text and Pillow-drawn placeholder images.

    Every call is counted in ``calls`` so tests and demos can see what the
    workflow asked for.
    """

    def __init__(self) -> None:
        self.calls: List[str] = []

    def enrich_story(self, story_idea: str, characters: List[Character]) -> str:
        self.calls.append("enrich_story")
        cast = ", ".join(c.name for c in characters) or "a lone hero"
        return (
            f"{story_idea.strip()}\n\n"
            f"Our story follows {cast}. It begins quietly, until a discovery pulls "
            "everyone into danger. Alliances are tested in the middle act, and the "
            "finale brings the whole cast together for one last desperate gamble."
        )

    def revise_story(self, current_story: str, feedback: str) -> str:
        self.calls.append("revise_story")
        return f"{current_story}\n\n(Revised: {feedback.strip()})"

    def suggest_characters(self, story_idea: str) -> List[Character]:
        self.calls.append("suggest_characters")
        ids = new_suggestion_ids(len(_SUGGESTED_CAST))
        return [
            Character(id=char_id, name=name, appearance=appearance,
                      personality=personality, backstory=backstory)
            for char_id, (name, appearance, personality, backstory) in zip(ids, _SUGGESTED_CAST)
        ]

    def create_comic_script(self, story: str, characters: List[Character]) -> List[PanelScript]:
        self.calls.append("create_comic_script")
        names = [c.name for c in characters] or ["Narrator"]
        script = []
        for index in range(TOTAL_PANELS):
            speaker = names[index % len(names)]
            script.append(PanelScript(
                description=f"Panel {index + 1}: {speaker} in a dramatic moment of the story.",
                narration="Meanwhile..." if index % 4 == 0 else "",
                dialogue=[DialogueLine(character=speaker, speech=f"Line {index + 1}!")]
                if index % 2 == 0 else [],
            ))
        return script

    def generate_cover(
        self, story_idea: str, characters: List[Character], style_prompt: str
    ) -> CoverArt:
        self.calls.append("generate_cover")
        title = " ".join(story_idea.split()[:4]).title() or "Untitled"
        return CoverArt(title=title, image=_placeholder(COVER_IMAGE_SIZE, title, story_idea))

    def generate_panel_image(self, panel_description: str, style_prompt: str) -> str:
        self.calls.append("generate_panel_image")
        return _placeholder(PANEL_IMAGE_SIZE, "Panel", panel_description)

    def edit_panel_image(self, image: str, instruction: str) -> str:
        """Stamp the instruction onto the image."""
        self.calls.append("edit_panel_image")
        try:
            canvas = decode_image(image)
        except ValueError:
            logger.warning("Mock edit received an unreadable image, drawing a new one")
            return _placeholder(PANEL_IMAGE_SIZE, "Edited", instruction)

        draw = ImageDraw.Draw(canvas)
        width, height = canvas.size
        band = height // 4
        draw.rectangle([0, height - band, width, height], fill="white", outline="black")
        draw_wrapped(draw, f"Edit: {instruction}", (8, height - band + 4, width - 8, height - 4),
                     get_font(max(10, band // 5)))
        return encode_png(canvas)
