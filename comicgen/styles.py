"""Catalog of the visual styles a comic can be drawn in."""

from enum import Enum

from pydantic import BaseModel, Field


class ComicStyle(str, Enum):
    """Names of the available styles, as stored in project files."""

    INDIAN_NOIR = "Indian Noir"
    ANIME_REALISM = "Anime Realism Aesthetic"
    WESTERN_COMIC = "Western Comic Book"
    EUROPEAN_COMIC = "European Comic Art"
    FANTASY_ILLUSTRATION = "Fantasy Illustration"
    NINETIES_INDIAN_COMIC = "90s Indian Comics"


class StyleOption(BaseModel):
    """A style in the catalog."""

    name: ComicStyle = Field(description="Display name, also the lookup key")
    image: str = Field(description="URL of a preview image")
    prompt: str = Field(description="Prompt fragment prepended to every image request")


_PREVIEW_BASE = "https://raw.githubusercontent.com/yd-singh/public-assets/main"

STYLES: list[StyleOption] = [
    StyleOption(
        name=ComicStyle.INDIAN_NOIR,
        image=f"{_PREVIEW_BASE}/indian-noir.png",
        prompt=(
            "A dark, gritty, high-contrast comic book panel in an Indian Noir style, "
            "reminiscent of classic detective films but with a South Asian setting. "
            "Heavy shadows, dramatic lighting, and a sense of mystery."
        ),
    ),
    StyleOption(
        name=ComicStyle.ANIME_REALISM,
        image=f"{_PREVIEW_BASE}/anime-realism.png",
        prompt=(
            "A comic book panel in a hyper-realistic anime aesthetic. Detailed characters "
            "with expressive eyes, cinematic lighting, and a beautifully rendered background. "
            "Clean lines with a touch of painterly texture."
        ),
    ),
    StyleOption(
        name=ComicStyle.WESTERN_COMIC,
        image=f"{_PREVIEW_BASE}/western-comic.png",
        prompt=(
            "A classic Western comic book style panel. Bold lines, dynamic action poses, "
            "and a color palette with strong primary colors and Ben-Day dots effect. "
            "Think Silver Age comics."
        ),
    ),
    StyleOption(
        name=ComicStyle.EUROPEAN_COMIC,
        image=f"{_PREVIEW_BASE}/european-comic.png",
        prompt=(
            "A sophisticated European comic art style (Bande Dessinée). Clean, precise "
            "lines (ligne claire), realistic environments, and a mature, cinematic color "
            "palette. The art is elegant and detailed."
        ),
    ),
    StyleOption(
        name=ComicStyle.FANTASY_ILLUSTRATION,
        image=f"{_PREVIEW_BASE}/fantasy-illustration.png",
        prompt=(
            "A lush fantasy illustration style. Painterly rendering, vibrant colors, and "
            "intricate details in costumes and environments. Magical elements, glowing "
            "effects, and a sense of epic scale."
        ),
    ),
    StyleOption(
        name=ComicStyle.NINETIES_INDIAN_COMIC,
        image=f"{_PREVIEW_BASE}/90s-indian-comic.png",
        prompt=(
            "90s Indian comic book art style: vibrant flat colors, exaggerated action poses, "
            "bold outlines, slightly grainy print texture, dynamic Hindi onomatopoeia, "
            "inspired by Raj Comics heroes like Super Commando Dhruv and Nagraj."
        ),
    ),
]


def get_style(name: str | ComicStyle | None) -> StyleOption | None:
    """Look up a style by its exact name."""
    if name is None:
        return None
    key = name.value if isinstance(name, ComicStyle) else name
    for style in STYLES:
        if style.name.value == key:
            return style
    return None


def list_styles() -> str:
    """Get a formatted list of available styles."""
    lines = ["Available Styles:", ""]
    for i, style in enumerate(STYLES, 1):
        lines.append(f"  [{i}] {style.name.value}")
        lines.append(f"      {style.prompt[:80]}...")
        lines.append("")
    return "\n".join(lines)
