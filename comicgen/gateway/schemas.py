"""Pydantic schemas for structured AI responses.

Structured Outputs require an object at the top level, so list results are
wrapped in a single-field object.
"""

from pydantic import BaseModel


class CharacterSuggestionSchema(BaseModel):
    name: str
    appearance: str
    personality: str
    backstory: str


class CharacterSuggestionsSchema(BaseModel):
    characters: list[CharacterSuggestionSchema]


class DialogueSchema(BaseModel):
    character: str
    speech: str


class PanelScriptSchema(BaseModel):
    description: str
    narration: str
    dialogue: list[DialogueSchema]


class ComicScriptSchema(BaseModel):
    panels: list[PanelScriptSchema]
