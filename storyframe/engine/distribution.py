"""
Scene budget distribution.

The number of scenes each plot point expands into is derived from the story's
total scene budget divided over a *projected* plot-point count (units times a
per-unit estimate). The real count is unknowable until every unit has been
populated, and units are populated on demand, so the projection is what keeps
the answer stable across calls made at different times for different acts.

Both the plot-point generation note and the later scene generation for a
single plot point must go through :func:`compute`.
"""
from __future__ import annotations

import dataclasses
import math
from typing import List, Optional, Sequence

from storyframe.config import Settings, get_settings
from storyframe.utils.logging_config import get_logger

logger = get_logger("storyframe.distribution")


@dataclasses.dataclass(frozen=True)
class PlotPointAllocation:
    plot_point: str
    scene_count: int
    plot_point_index: int


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def compute(
    total_scenes_budget: int,
    total_units_count: int,
    per_unit_plot_point_estimate: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> int:
    """Scenes per plot point, clamped to the configured range (1..3 by default).

    ``compute(70, 15, 3)`` is ``clamp(round(70 / 45), 1, 3) == 2``. The estimate
    and the clamp bounds come from ``settings`` when given, else the global settings.
    """
    settings = settings or get_settings()
    if per_unit_plot_point_estimate is None:
        per_unit_plot_point_estimate = settings.plot_points_per_unit_estimate
    low = settings.min_scenes_per_plot_point
    high = settings.max_scenes_per_plot_point

    expected_plot_points = total_units_count * per_unit_plot_point_estimate
    if expected_plot_points <= 0:
        return low

    raw = _round_half_up(total_scenes_budget / expected_plot_points)
    return max(low, min(high, raw))


def describe(
    plot_point_count: int,
    total_scenes_budget: Optional[int],
    scenes_per_plot_point: Optional[int] = None,
) -> str:
    """Human-readable scene distribution note for the plot-points context."""
    if not total_scenes_budget:
        return "1:1 plot point to scene ratio"
    note = f"{plot_point_count} plot points for {total_scenes_budget} scenes"
    if scenes_per_plot_point:
        note += f" ({scenes_per_plot_point} scenes per plot point)"
    return note


def distribute(
    plot_points: Sequence[str],
    total_scenes_budget: int,
    total_units_count: int,
    per_unit_plot_point_estimate: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> List[PlotPointAllocation]:
    """Assign the same scene count to every plot point of an act."""
    scene_count = compute(
        total_scenes_budget, total_units_count, per_unit_plot_point_estimate, settings=settings
    )
    logger.debug(
        "Scene distribution: %d scenes over %d units = %d scenes per plot point",
        total_scenes_budget, total_units_count, scene_count,
    )
    return [
        PlotPointAllocation(plot_point=text, scene_count=scene_count, plot_point_index=index)
        for index, text in enumerate(plot_points)
    ]
