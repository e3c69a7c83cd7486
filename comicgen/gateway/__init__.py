"""AI gateway implementations."""

import logging
import os

from ..logging.interaction_logger import InteractionLogger
from .base import ComicGateway, CoverArt
from .mock_gateway import MockComicGateway
from .openai_gateway import OpenAIComicGateway

logger = logging.getLogger(__name__)


def create_gateway(use_mock: bool = False, session_name: str = "comic") -> ComicGateway:
    """OpenAI gateway with an interaction log, or the mock when there is no key."""
    api_key = os.getenv("OPENAI_API_KEY")
    if use_mock or not api_key:
        if not use_mock:
            logger.warning("OPENAI_API_KEY not set, using placeholder art without AI calls")
        return MockComicGateway()
    return OpenAIComicGateway(api_key=api_key, logger=InteractionLogger(session_name))


__all__ = [
    "ComicGateway",
    "CoverArt",
    "MockComicGateway",
    "OpenAIComicGateway",
    "create_gateway",
]
