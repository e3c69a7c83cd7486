"""Logging for ComicGen: console setup and the AI interaction log."""

from .interaction_logger import InteractionLogger
from .log_setup import setup_logging

__all__ = ["InteractionLogger", "setup_logging"]
