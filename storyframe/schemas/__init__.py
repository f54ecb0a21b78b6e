# Story and project schema definitions
from .story_schemas import (
    StoredDocumentModel,
    Character,
    StoryInput,
    ProjectData,
    ActDescriptor,
    TemplateDescriptor,
    format_characters,
)

from .project_schemas import (
    ProjectRecord,
    normalize_act_plot_points,
    plot_point_text,
    is_normalized,
)

__all__ = [
    "StoredDocumentModel",
    "Character",
    "StoryInput",
    "ProjectData",
    "ActDescriptor",
    "TemplateDescriptor",
    "format_characters",
    "ProjectRecord",
    "normalize_act_plot_points",
    "plot_point_text",
    "is_normalized",
]
