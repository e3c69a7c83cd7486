"""Interaction logger for tracking AI prompts and responses.

Captures every call the gateway makes to the AI service (story text,
structured script data and images) in a JSON file per comic session, for
later review of what was asked and what came back. Image payloads are not
stored, only their size.
"""

import json
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import LOG_DIR


class InteractionLogger:
    """Logs all AI interactions of one comic creation session.

    Attributes:
        session_id: Unique identifier for this session's log.
        log_dir: Directory where log files are saved.
        log_file: Path to the current session's log file.
        interactions: List of all logged interactions in this session.
    """

    def __init__(self, session_name: str = "comic", log_dir: str | Path = LOG_DIR):
        """Initialize the interaction logger.

        Args:
            session_name: Used in the log file name.
            log_dir: Directory to save log files (created if it doesn't exist).
        """
        self.session_id = datetime.now().strftime("%Y%m%d_%H%M%S_%f")
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        safe_name = "".join(c if c.isalnum() or c in (" ", "-", "_") else "_"
                            for c in session_name)
        safe_name = safe_name.replace(" ", "_")[:50]

        self.log_file = self.log_dir / f"{safe_name}_{self.session_id}.json"
        self.interactions: List[Dict[str, Any]] = []
        self._lock = threading.Lock()

        self._save_metadata(session_name)

    def _save_metadata(self, session_name: str) -> None:
        metadata = {
            "session_id": self.session_id,
            "session_name": session_name,
            "start_time": datetime.now().isoformat(),
            "interactions": [],
        }
        with open(self.log_file, "w", encoding="utf-8") as f:
            json.dump(metadata, f, indent=2, ensure_ascii=False)

    def log_text_interaction(
        self,
        capability: str,
        prompt: str,
        response: Optional[str],
        model: str,
        temperature: float,
        max_tokens: int,
        parsed_response: Optional[Any] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """Log a text or structured-data generation call.

        Args:
            capability: Gateway capability, e.g. ``"enrich_story"``.
            prompt: The user prompt sent to the model.
            response: The raw response text (None if the call failed).
            model: The LLM model used.
            temperature: Temperature parameter used.
            max_tokens: Max tokens parameter used.
            parsed_response: The parsed structured response, if any.
            error_message: Error message if the call failed.
        """
        self._append_interaction({
            "type": "text_generation",
            "capability": capability,
            "timestamp": datetime.now().isoformat(),
            "model": model,
            "parameters": {"temperature": temperature, "max_tokens": max_tokens},
            "prompt": prompt,
            "response": {"raw": response, "parsed": parsed_response},
            "success": error_message is None,
            "error": error_message,
        })

    def log_image_interaction(
        self,
        capability: str,
        prompt: str,
        model: str,
        size: str,
        quality: str,
        image_bytes: int = 0,
        error_message: Optional[str] = None,
    ) -> None:
        """Log an image generation or edit call.

        Args:
            capability: Gateway capability, e.g. ``"generate_panel_image"``.
            prompt: The prompt sent to the image API.
            model: The image model used.
            size: Image size parameter.
            quality: Image quality parameter.
            image_bytes: Length of the returned base64 payload.
            error_message: Error message if the call failed.
        """
        self._append_interaction({
            "type": "image_generation",
            "capability": capability,
            "timestamp": datetime.now().isoformat(),
            "model": model,
            "parameters": {"size": size, "quality": quality},
            "prompt": prompt,
            "result": {"image_bytes": image_bytes},
            "success": error_message is None,
            "error": error_message,
        })

    def _append_interaction(self, interaction: Dict[str, Any]) -> None:
        with self._lock:
            self.interactions.append(interaction)

            try:
                with open(self.log_file, "r", encoding="utf-8") as f:
                    log_data = json.load(f)
            except (FileNotFoundError, json.JSONDecodeError):
                log_data = {
                    "session_id": self.session_id,
                    "start_time": datetime.now().isoformat(),
                    "interactions": [],
                }

            log_data["interactions"].append(interaction)

            with open(self.log_file, "w", encoding="utf-8") as f:
                json.dump(log_data, f, indent=2, ensure_ascii=False)

    def get_log_path(self) -> str:
        """Absolute path to the log file."""
        return str(self.log_file.resolve())

    def get_interaction_count(self) -> int:
        return len(self.interactions)
