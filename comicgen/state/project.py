"""The comic project: everything the user entered and the AI generated.

Field aliases are the camelCase keys used in exported project files, so
``model_dump(by_alias=True)`` produces the file layout directly.
"""

import uuid

from pydantic import BaseModel, ConfigDict, Field

from ..config import PANELS_PER_PAGE, TOTAL_PANELS
from ..styles import ComicStyle, StyleOption, get_style


class Character(BaseModel):
    """A member of the comic's cast."""

    id: str = Field(description="Unique identifier assigned at creation")
    name: str = Field(description="Character's name, as used in the story text")
    appearance: str = Field(description="Visual description")
    personality: str = Field(description="Key personality traits")
    backstory: str = Field(default="", description="Optional backstory")

    def describe(self) -> str:
        """Full description used when enriching the story."""
        return (
            f"{self.name}: {self.appearance}. Personality: {self.personality}. "
            f"Backstory: {self.backstory}"
        )


def new_manual_character_id() -> str:
    return f"manual-{uuid.uuid4().hex[:12]}"


def new_suggestion_ids(count: int) -> list[str]:
    """Ids for one batch of suggested characters."""
    batch = uuid.uuid4().hex[:8]
    return [f"sugg-{batch}-{index}" for index in range(count)]


class DialogueLine(BaseModel):
    """One line of speech in a panel."""

    character: str = Field(description="Name of the speaking character")
    speech: str = Field(description="What they say")


class PanelScript(BaseModel):
    """Script for a single comic panel."""

    description: str = Field(description="Visual description used as the image prompt")
    narration: str = Field(default="", description="Narrator's text box, may be empty")
    dialogue: list[DialogueLine] = Field(default_factory=list)

    @property
    def has_text(self) -> bool:
        return bool(self.narration or self.dialogue)


class Project(BaseModel):
    """Complete state of one comic book."""

    model_config = ConfigDict(populate_by_name=True)

    story_idea: str = Field(default="", alias="storyIdea")
    characters: list[Character] = Field(default_factory=list)
    enriched_story: str = Field(default="", alias="enrichedStory")
    comic_script: list[PanelScript] = Field(default_factory=list, alias="comicScript")
    selected_style: ComicStyle | None = Field(default=None, alias="selectedStyleName")
    generated_panels: list[str | None] = Field(
        default_factory=list,
        alias="generatedPanels",
        description="Base64 image per panel; None until generated",
    )
    comic_title: str = Field(default="", alias="comicTitle")
    cover_image: str | None = Field(default=None, alias="coverImage")

    @property
    def style(self) -> StyleOption | None:
        return get_style(self.selected_style)

    @property
    def is_generating(self) -> bool:
        """Whether the comic still has artwork to generate."""
        return (
            self.cover_image is None
            or len(self.generated_panels) < TOTAL_PANELS
            or any(panel is None for panel in self.generated_panels)
        )

    def missing_panel_indices(self) -> list[int]:
        """Indices of scripted panels whose image slot is still empty."""
        return [
            index
            for index in range(len(self.comic_script))
            if index < len(self.generated_panels) and self.generated_panels[index] is None
        ]

    def page_panels(self, story_page: int) -> list[tuple[int, PanelScript, str | None]]:
        """Panels on a story page (0-based) as (index, script, image) tuples."""
        start = story_page * PANELS_PER_PAGE
        rows = []
        for index in range(start, min(start + PANELS_PER_PAGE, len(self.comic_script))):
            image = self.generated_panels[index] if index < len(self.generated_panels) else None
            rows.append((index, self.comic_script[index], image))
        return rows

    def character_summary(self) -> str:
        return ", ".join(f"{c.name} ({c.appearance})" for c in self.characters)
