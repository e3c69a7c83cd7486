"""Gateway backed by the OpenAI chat and image APIs."""

import base64
import binascii
import logging
import os
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from openai import OpenAI
from pydantic import BaseModel

from ..config import TOTAL_PANELS, TOTAL_STORY_PAGES, GatewayConfig
from ..errors import GatewayError, ResponseShapeError
from ..json_sanitizer import (
    find_encoding_warnings,
    parse_json_payload,
    safe_json_dumps,
    sanitize_parsed_response,
    sanitize_text,
)
from ..logging.interaction_logger import InteractionLogger
from ..prompt_loader import load_prompt
from ..state.project import Character, PanelScript
from .base import (
    ComicGateway,
    CoverArt,
    characters_from_suggestions,
    clean_title,
    script_from_panels,
)
from .schemas import CharacterSuggestionsSchema, ComicScriptSchema

logger = logging.getLogger(__name__)

_SYSTEM_PROMPT = (
    "You are part of a comic book creation tool. Follow the instructions in the "
    "user message exactly."
    "\n\nENCODING REQUIREMENT: Write special characters (é, ü, ñ, etc.) as literal "
    "UTF-8 characters directly in the text. Do NOT use Unicode escape sequences. "
    "Never output null bytes, raw hexadecimal byte sequences, or incomplete escape "
    "sequences."
)


@contextmanager
def _failure_message(message: str) -> Iterator[None]:
    """Turn any unexpected error inside the block into ``GatewayError(message)``."""
    try:
        yield
    except GatewayError:
        raise
    except Exception as e:
        logger.exception("AI request failed: %s", message)
        raise GatewayError(message) from e


class OpenAIComicGateway(ComicGateway):
    """Calls OpenAI for story text, structured scripts and images.

    Args:
        api_key: OpenAI key; defaults to ``OPENAI_API_KEY``.
        config: Model parameters; defaults to the values in ``comicgen.config``.
        logger: Optional interaction logger recording every request.
        client: Pre-built client, mainly for tests.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        config: Optional[GatewayConfig] = None,
        logger: Optional[InteractionLogger] = None,
        client: Optional[Any] = None,
    ) -> None:
        self.config: GatewayConfig = config or GatewayConfig()
        self.client = client or OpenAI(api_key=api_key or os.getenv("OPENAI_API_KEY"))
        self.logger: Optional[InteractionLogger] = logger

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def enrich_story(self, story_idea: str, characters: List[Character]) -> str:
        with _failure_message("Failed to enrich the story. Please try again."):
            prompt = load_prompt(
                "enrich_story.user.md",
                total_pages=TOTAL_STORY_PAGES,
                total_panels=TOTAL_PANELS,
                characters="\n".join(c.describe() for c in characters),
                story_idea=story_idea,
            )
            return self._complete_text("enrich_story", prompt)

    def revise_story(self, current_story: str, feedback: str) -> str:
        with _failure_message("Failed to revise the story. Please try again."):
            prompt = load_prompt(
                "revise_story.user.md", current_story=current_story, feedback=feedback
            )
            return self._complete_text("revise_story", prompt)

    def suggest_characters(self, story_idea: str) -> List[Character]:
        with _failure_message(
            "Failed to suggest characters. Please try again or create them manually."
        ):
            prompt = load_prompt("suggest_characters.user.md", story_idea=story_idea)
            data = self._complete_structured(
                "suggest_characters", prompt, CharacterSuggestionsSchema
            )
            items = data.get("characters") if isinstance(data, dict) else data
            return characters_from_suggestions(items)

    def create_comic_script(self, story: str, characters: List[Character]) -> List[PanelScript]:
        with _failure_message(
            "Failed to create the comic script. The AI may have returned an invalid "
            "format. Please try again."
        ):
            prompt = load_prompt(
                "comic_script.user.md",
                total_panels=TOTAL_PANELS,
                characters="\n".join(f"{c.name}: {c.appearance}" for c in characters),
                story=story,
            )
            data = self._complete_structured("create_comic_script", prompt, ComicScriptSchema)
            items = data.get("panels") if isinstance(data, dict) else data
            return script_from_panels(items)

    def generate_cover(
        self, story_idea: str, characters: List[Character], style_prompt: str
    ) -> CoverArt:
        with _failure_message("Failed to generate the comic book cover. Please try again."):
            title = clean_title(
                self._complete_text(
                    "comic_title", load_prompt("comic_title.user.md", story_idea=story_idea)
                )
            )
            prompt = load_prompt(
                "cover_image.md",
                style_prompt=style_prompt,
                characters=", ".join(f"{c.name} ({c.appearance})" for c in characters),
                story_idea=story_idea,
            )
            image = self._generate_image("generate_cover", prompt, self.config.cover_image_size)
            return CoverArt(title=title, image=image)

    def generate_panel_image(self, panel_description: str, style_prompt: str) -> str:
        with _failure_message("Failed to generate an image for a panel."):
            prompt = load_prompt(
                "panel_image.md", style_prompt=style_prompt, description=panel_description
            )
            return self._generate_image(
                "generate_panel_image", prompt, self.config.panel_image_size
            )

    def edit_panel_image(self, image: str, instruction: str) -> str:
        with _failure_message("Failed to edit the image for the panel."):
            try:
                image_bytes = base64.b64decode(image, validate=True)
            except (binascii.Error, ValueError) as e:
                raise GatewayError("The panel image could not be read for editing.") from e

            cfg = self.config
            try:
                response = self.client.images.edit(
                    model=cfg.image_model,
                    image=("panel.png", image_bytes, "image/png"),
                    prompt=instruction,
                    n=1,
                )
                result = self._extract_image(response)
            except Exception as e:
                self._log_image("edit_panel_image", instruction, cfg.panel_image_size,
                                error_message=str(e))
                raise
            self._log_image("edit_panel_image", instruction, cfg.panel_image_size,
                            image_bytes=len(result))
            return result

    # ------------------------------------------------------------------
    # API calls
    # ------------------------------------------------------------------

    def _messages(self, prompt: str) -> List[Dict[str, str]]:
        return [
            {"role": "system", "content": _SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    def _complete_text(self, capability: str, prompt: str) -> str:
        """Plain text completion, sanitized."""
        cfg = self.config
        try:
            response = self.client.chat.completions.create(
                model=cfg.llm_model,
                messages=self._messages(prompt),
                temperature=cfg.llm_temperature,
                max_tokens=cfg.llm_max_tokens,
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            self._log_text(capability, prompt, None, error_message=str(e))
            raise

        self._log_text(capability, prompt, content)
        text = sanitize_text(content).strip()
        if not text:
            raise ResponseShapeError("The AI returned an empty response.")
        return text

    def _complete_structured(
        self, capability: str, prompt: str, response_model: type[BaseModel]
    ) -> Any:
        """Completion constrained to ``response_model``.

        Uses Structured Outputs first. If that call fails or the model refuses,
        falls back to ``json_object`` mode and lenient JSON parsing.
        """
        cfg = self.config
        messages = self._messages(prompt)

        try:
            response = self.client.chat.completions.parse(
                model=cfg.llm_model,
                messages=messages,
                temperature=cfg.llm_temperature,
                max_tokens=cfg.llm_max_tokens,
                response_format=response_model,
            )
            parsed = response.choices[0].message.parsed
            if parsed is not None:
                data = parsed.model_dump()
                self._log_text(capability, prompt, safe_json_dumps(data), parsed_response=data)
                return sanitize_parsed_response(data)
            logger.warning("%s: structured response was empty, retrying in JSON mode", capability)
        except Exception as e:
            logger.warning("%s: structured output failed (%s), retrying in JSON mode",
                           capability, e)

        try:
            response = self.client.chat.completions.create(
                model=cfg.llm_model,
                messages=messages,
                temperature=cfg.llm_temperature,
                max_tokens=cfg.llm_max_tokens,
                response_format={"type": "json_object"},
            )
            content = response.choices[0].message.content or ""
        except Exception as e:
            self._log_text(capability, prompt, None, error_message=str(e))
            raise

        data = parse_json_payload(content)
        self._log_text(capability, prompt, content, parsed_response=data)
        for warning in find_encoding_warnings(data):
            logger.warning("%s: %s", capability, warning)
        return data

    def _generate_image(self, capability: str, prompt: str, size: str) -> str:
        """Generate one image and return it base64 encoded."""
        cfg = self.config
        params: Dict[str, Any] = dict(
            model=cfg.image_model,
            prompt=prompt,
            size=size,
            quality=cfg.image_quality,
            n=1,
        )
        # GPT image models always answer in base64 and reject this parameter
        if cfg.image_model.startswith("dall-e"):
            params["response_format"] = "b64_json"

        try:
            response = self.client.images.generate(**params)
            image = self._extract_image(response)
        except Exception as e:
            self._log_image(capability, prompt, size, error_message=str(e))
            raise
        self._log_image(capability, prompt, size, image_bytes=len(image))
        return image

    @staticmethod
    def _extract_image(response: Any) -> str:
        data = getattr(response, "data", None) or []
        image = getattr(data[0], "b64_json", None) if data else None
        if not image:
            raise GatewayError("The image service returned no image data.")
        return image

    # ------------------------------------------------------------------
    # Interaction log
    # ------------------------------------------------------------------

    def _log_text(
        self,
        capability: str,
        prompt: str,
        response: Optional[str],
        parsed_response: Optional[Any] = None,
        error_message: Optional[str] = None,
    ) -> None:
        if not self.logger:
            return
        cfg = self.config
        self.logger.log_text_interaction(
            capability=capability,
            prompt=prompt,
            response=response,
            model=cfg.llm_model,
            temperature=cfg.llm_temperature,
            max_tokens=cfg.llm_max_tokens,
            parsed_response=parsed_response,
            error_message=error_message,
        )

    def _log_image(
        self,
        capability: str,
        prompt: str,
        size: str,
        image_bytes: int = 0,
        error_message: Optional[str] = None,
    ) -> None:
        if not self.logger:
            return
        self.logger.log_image_interaction(
            capability=capability,
            prompt=prompt,
            model=self.config.image_model,
            size=size,
            quality=self.config.image_quality,
            image_bytes=image_bytes,
            error_message=error_message,
        )
