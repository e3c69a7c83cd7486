"""Saving and opening comic project files.

A project file is the ``Project`` serialized with its camelCase aliases plus
a ``version`` field:

    {"version": 2, "storyIdea": "...", "characters": [...], "enrichedStory": "...",
     "comicScript": [...], "selectedStyleName": "Western Comic Book",
     "generatedPanels": ["<base64>", null, ...], "comicTitle": "...",
     "coverImage": "<base64>"}
"""

import json
import logging
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from .config import PROJECT_FILE_VERSION, PROJECT_FILENAME
from .errors import IncompatibleProjectError, PersistenceError
from .state.project import Project
from .styles import get_style

logger = logging.getLogger(__name__)

_CORRUPTED = "Invalid or corrupted project file."


def project_to_dict(project: Project) -> dict[str, Any]:
    """Serialize ``project`` into the project file layout.

    Raises:
        PersistenceError: If no style has been chosen yet.
    """
    if project.style is None:
        raise PersistenceError("Choose a style before saving the project.")
    data: dict[str, Any] = {"version": PROJECT_FILE_VERSION}
    data.update(project.model_dump(by_alias=True, mode="json"))
    return data


def export_project(project: Project) -> str:
    """Project file contents as pretty-printed JSON text."""
    return json.dumps(project_to_dict(project), indent=2, ensure_ascii=False)


def parse_project(raw: Union[str, bytes]) -> Project:
    """Validate project file contents and rebuild the ``Project``.

    Raises:
        IncompatibleProjectError: For files written by an older version.
        PersistenceError: For anything else that cannot be opened.
    """
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise PersistenceError(_CORRUPTED) from e

    if not isinstance(data, dict):
        raise PersistenceError(_CORRUPTED)
    if data.get("version") != PROJECT_FILE_VERSION:
        raise IncompatibleProjectError(
            "This project file is from an older version of ComicGen and is not compatible."
        )
    if not data.get("storyIdea") or data.get("characters") is None or not data.get("selectedStyleName"):
        raise PersistenceError(_CORRUPTED)

    style_name = data["selectedStyleName"]
    if get_style(style_name) is None:
        raise PersistenceError(f'Style "{style_name}" not found.')

    fields = {key: value for key, value in data.items() if key != "version"}
    try:
        project = Project.model_validate(fields)
    except ValidationError as e:
        logger.warning("Project file failed validation: %s", e)
        raise PersistenceError(_CORRUPTED) from e

    logger.info(
        "Opened project with %d characters and %d/%d panels",
        len(project.characters),
        sum(1 for p in project.generated_panels if p is not None),
        len(project.comic_script),
    )
    return project


def save_project_file(project: Project, directory: Union[str, Path], filename: str = PROJECT_FILENAME) -> Path:
    """Write the project file into ``directory`` and return its path."""
    path = Path(directory) / filename
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(export_project(project), encoding="utf-8")
    return path


def load_project_file(path: Union[str, Path]) -> Project:
    """Read and validate a project file from disk.

    Raises:
        PersistenceError: If the file cannot be read or is not a valid project.
    """
    try:
        raw = Path(path).read_bytes()
    except OSError as e:
        raise PersistenceError(f"Could not read {path}.") from e
    return parse_project(raw)
