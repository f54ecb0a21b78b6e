"""
Story input and template descriptor schemas.

These Pydantic models describe the inputs the context engine reads. Field
aliases follow the camelCase keys used by stored project documents, while
attribute access stays snake_case.

Usage:
    from storyframe.schemas import StoryInput, TemplateDescriptor

    story = StoryInput.model_validate({"title": "Drift", "totalScenes": 40})
    template = TemplateDescriptor.model_validate(project["templateData"])
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Dict, Any, Union


GENERIC_DESCRIPTION_PREFIX = "Main character:"


class StoredDocumentModel(BaseModel):
    """
    Base model for documents read from project storage.

    Unknown keys are kept (stored documents carry fields the engine never
    reads) and both alias and attribute names are accepted on input.
    """
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class Character(StoredDocumentModel):
    """A named character with an optional free-text description."""

    name: str = Field(..., description="Character display name")
    description: Optional[str] = Field(default=None, description="Short character description")

    def display(self) -> str:
        """Render as ``Name (Description)``, or bare ``Name`` for generic descriptions."""
        description = (self.description or "").strip()
        if not description or description.startswith(GENERIC_DESCRIPTION_PREFIX):
            return self.name
        return f"{self.name} ({description})"


def format_characters(characters: Union[str, List[Any], None]) -> str:
    """Flatten a character list into a comma-separated display string.

    Items may be :class:`Character` instances, plain dicts with a ``name`` key,
    or bare strings. A string argument is returned unchanged.
    """
    if characters is None:
        return ""
    if isinstance(characters, str):
        return characters

    rendered = []
    for char in characters:
        if isinstance(char, Character):
            rendered.append(char.display())
        elif isinstance(char, dict) and char.get("name"):
            rendered.append(Character.model_validate(char).display())
        else:
            rendered.append(str(char))
    return ", ".join(rendered)


class StoryInput(StoredDocumentModel):
    """The story-level concept a project was created from."""

    title: str = Field(default="Untitled Story")
    logline: str = Field(default="")
    characters: Union[str, List[Union[Character, str]], None] = Field(default=None)
    tone: Optional[str] = Field(default=None)
    genre: Optional[str] = Field(default=None)
    total_scenes: Optional[int] = Field(default=None, alias="totalScenes")
    influences: Dict[str, Any] = Field(default_factory=dict)
    influence_prompt: Optional[str] = Field(default=None, alias="influencePrompt")


class ProjectData(StoredDocumentModel):
    """
    Richer project-level data that overrides the bare story input.

    Populated from the project document when the caller has it at hand.
    """
    project_characters: List[Union[Character, str]] = Field(
        default_factory=list, alias="projectCharacters"
    )
    influences: Optional[Dict[str, Any]] = Field(default=None)


class ActDescriptor(StoredDocumentModel):
    """One structural unit as described by a template or generated structure."""

    name: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    character_development: Optional[str] = Field(default=None)
    user_directions: Optional[str] = Field(default=None, alias="userDirections")


class TemplateDescriptor(StoredDocumentModel):
    """
    A named structure template.

    ``id`` is the stable template identifier used for canonical ordering; the
    display ``name`` is only used as a fuzzy fallback when ``id`` is absent.
    """
    name: str = Field(default="unknown")
    id: Optional[str] = Field(default=None)
    structure: Dict[str, ActDescriptor] = Field(default_factory=dict)
