"""Prompt templates for the AI gateway.

Templates are markdown files in ``comicgen/prompts`` using ``str.format``
placeholders:

    from comicgen.prompt_loader import load_prompt

    prompt = load_prompt("comic_title.user.md", story_idea="A heist on the moon")
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Union

PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"


@lru_cache(maxsize=32)
def _read_file(filepath: str) -> str:
    """Read and cache file contents."""
    return Path(filepath).read_text(encoding="utf-8").strip()


def load_prompt(template: Union[str, Path], **kwargs: Any) -> str:
    """Load a prompt template and fill in its placeholders.

    Args:
        template: File name inside ``PROMPTS_DIR`` or a path to any file.
        **kwargs: Values for the template placeholders.

    Returns:
        The prompt text.
    """
    path = Path(template)
    if not path.is_absolute() and not path.exists():
        path = PROMPTS_DIR / path
    content = _read_file(str(path))
    return content.format(**kwargs) if kwargs else content


def clear_cache() -> None:
    """Clear the template cache."""
    _read_file.cache_clear()
