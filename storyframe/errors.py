"""Exceptions raised by the context-composition engine and its services."""

from __future__ import annotations


LEVEL_NAMES = {
    1: "story",
    2: "structure",
    3: "act",
    4: "plot_points",
    5: "scene",
}


class StoryframeError(Exception):
    """Base class for storyframe errors."""


class PrecursorMissing(StoryframeError):
    """A context level was built before the level it depends on."""

    def __init__(self, level: int, required_level: int):
        self.level = level
        self.required_level = required_level
        super().__init__(
            f"{LEVEL_NAMES[required_level].replace('_', ' ').capitalize()} context must be built "
            f"before {LEVEL_NAMES[level].replace('_', ' ')} context"
        )


class ProjectNotFound(StoryframeError):
    def __init__(self, project_id: str):
        self.project_id = project_id
        super().__init__(f"Project not found: {project_id}")


class PlotPointNotFound(StoryframeError):
    def __init__(self, act_key: str, plot_point_index: int):
        self.act_key = act_key
        self.plot_point_index = plot_point_index
        super().__init__(f"Plot point {plot_point_index} not found in act {act_key}")


class UnknownAct(StoryframeError):
    def __init__(self, act_key: str):
        self.act_key = act_key
        super().__init__(f"Invalid act key: {act_key}")
