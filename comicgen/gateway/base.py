"""The AI gateway contract shared by the OpenAI and mock implementations.

Every method either returns data already converted into the project model or
raises ``GatewayError`` (``ResponseShapeError`` for malformed data) with a
message that can be shown to the user as-is.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List

from pydantic import ValidationError

from ..config import TOTAL_PANELS
from ..errors import ResponseShapeError
from ..state.project import Character, PanelScript, new_suggestion_ids
from .schemas import CharacterSuggestionSchema


@dataclass
class CoverArt:
    """Title and cover image for a comic."""

    title: str
    image: str


class ComicGateway(ABC):
    """Text and image generation capabilities used by the workflow."""

    @abstractmethod
    def enrich_story(self, story_idea: str, characters: List[Character]) -> str:
        """Expand a story idea into a full narrative featuring the characters."""

    @abstractmethod
    def revise_story(self, current_story: str, feedback: str) -> str:
        """Revise a narrative according to user feedback."""

    @abstractmethod
    def suggest_characters(self, story_idea: str) -> List[Character]:
        """Suggest a cast for a story idea."""

    @abstractmethod
    def create_comic_script(self, story: str, characters: List[Character]) -> List[PanelScript]:
        """Break a narrative into exactly ``TOTAL_PANELS`` panel scripts."""

    @abstractmethod
    def generate_cover(self, story_idea: str, characters: List[Character], style_prompt: str) -> CoverArt:
        """Generate a title, then a cover image."""

    @abstractmethod
    def generate_panel_image(self, panel_description: str, style_prompt: str) -> str:
        """Generate a base64 image for one panel."""

    @abstractmethod
    def edit_panel_image(self, image: str, instruction: str) -> str:
        """Apply a free-text edit to a base64 image and return the new image."""


def clean_title(raw_title: str) -> str:
    return raw_title.strip().replace('"', "")


def characters_from_suggestions(items: Any) -> List[Character]:
    """Validate suggested characters and assign them ids.

    Raises:
        ResponseShapeError: If ``items`` is not a list of complete characters.
    """
    if not isinstance(items, list):
        raise ResponseShapeError("AI did not return a valid list of characters.")
    try:
        suggestions = [CharacterSuggestionSchema.model_validate(item) for item in items]
    except ValidationError as e:
        raise ResponseShapeError("AI did not return a valid list of characters.") from e

    ids = new_suggestion_ids(len(suggestions))
    return [
        Character(id=char_id, **suggestion.model_dump())
        for char_id, suggestion in zip(ids, suggestions)
    ]


def script_from_panels(items: Any) -> List[PanelScript]:
    """Validate a generated panel list against the fixed comic length.

    Longer scripts are truncated to ``TOTAL_PANELS``; empty or shorter ones
    are rejected so the comic always has one script entry per image slot.

    Raises:
        ResponseShapeError: If the script is malformed or too short.
    """
    if not isinstance(items, list) or not items:
        raise ResponseShapeError("Generated script is not a valid list of panels.")
    if len(items) < TOTAL_PANELS:
        raise ResponseShapeError(
            f"Generated script has {len(items)} panels but the comic needs {TOTAL_PANELS}."
        )
    try:
        return [PanelScript.model_validate(item) for item in items[:TOTAL_PANELS]]
    except ValidationError as e:
        raise ResponseShapeError("Generated script panels are malformed.") from e
