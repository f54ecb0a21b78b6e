"""
Project record schema.

A project record is the persisted document the causal-history loader and the
generation service read. Plot points are normalized to plain ordered lists when
the record is validated, so every reader downstream sees a single shape.

Stored plot points for one act have appeared in three shapes over time:

- ``["a", "b", "c"]`` (current list form)
- ``{"plotPoints": ["a", "b"], ...}`` (wrapped form with extra metadata)
- ``{"0": "a", "1": "b"}`` (legacy sparse map with numeric-string keys)
"""
from __future__ import annotations

import json
import re
from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from .story_schemas import (
    ActDescriptor,
    Character,
    StoredDocumentModel,
    StoryInput,
    TemplateDescriptor,
)

_NUMERIC_KEY = re.compile(r"\d+", re.ASCII)


def plot_point_text(item: Any) -> str:
    """Return the text of a stored plot point (string or ``{"plotPoint": ...}`` dict)."""
    if isinstance(item, str):
        return item
    if isinstance(item, dict) and isinstance(item.get("plotPoint"), str):
        return item["plotPoint"]
    return json.dumps(item, default=str)


def normalize_act_plot_points(raw: Any) -> List[str]:
    """Normalize one act's stored plot points to an ordered list of strings.

    Legacy numeric-keyed maps are ordered by integer key value, so ``"10"``
    sorts after ``"2"``. Unrecognized shapes yield an empty list.
    """
    if raw is None:
        return []
    if isinstance(raw, list):
        return [plot_point_text(item) for item in raw]
    if isinstance(raw, dict):
        wrapped = raw.get("plotPoints")
        if isinstance(wrapped, list):
            return [plot_point_text(item) for item in wrapped]
        numeric_keys = sorted((k for k in raw if _NUMERIC_KEY.fullmatch(str(k))), key=int)
        return [plot_point_text(raw[k]) for k in numeric_keys]
    return []


def is_normalized(raw: Any) -> bool:
    """True when ``raw`` is already a list of plain strings."""
    return isinstance(raw, list) and all(isinstance(item, str) for item in raw)


class ProjectRecord(StoredDocumentModel):
    """The fields of a persisted project the engine reads."""

    story_input: StoryInput = Field(default_factory=StoryInput, alias="storyInput")
    generated_structure: Dict[str, ActDescriptor] = Field(
        default_factory=dict, alias="generatedStructure"
    )
    template_data: Optional[TemplateDescriptor] = Field(default=None, alias="templateData")
    plot_points: Dict[str, List[str]] = Field(default_factory=dict, alias="plotPoints")
    project_characters: List[Character | str] = Field(
        default_factory=list, alias="projectCharacters"
    )
    influences: Optional[Dict[str, Any]] = Field(default=None)
    creative_directions: Dict[str, Any] = Field(default_factory=dict, alias="creativeDirections")
    last_used_prompt: Optional[str] = Field(default=None, alias="lastUsedPrompt")
    last_used_system_message: Optional[str] = Field(default=None, alias="lastUsedSystemMessage")

    @field_validator("plot_points", mode="before")
    @classmethod
    def _normalize_plot_points(cls, value: Any) -> Dict[str, List[str]]:
        if not value:
            return {}
        if not isinstance(value, dict):
            raise ValueError("plotPoints must be a mapping keyed by act key")
        return {key: normalize_act_plot_points(raw) for key, raw in value.items()}

    def act_plot_points(self, act_key: str) -> List[str]:
        return self.plot_points.get(act_key, [])

    def scene_direction(self, act_key: str, plot_point_index: int) -> Optional[str]:
        """User creative direction stored for the scenes of one plot point."""
        scenes = self.creative_directions.get("scenes") or {}
        direction = scenes.get(f"{act_key}_{plot_point_index}")
        return direction if isinstance(direction, str) else None

    def resolved_template(self) -> TemplateDescriptor:
        """Template descriptor, with the generated structure filled in when the template has none."""
        template = self.template_data or TemplateDescriptor()
        if not template.structure and self.generated_structure:
            template = template.model_copy(update={"structure": self.generated_structure})
        return template
