"""
Tests for the five-level context chain.

Validates the strict build order (each level needs the one below it), the
arena's invalidation of dependent levels on rebuild, and the payload each
builder records.
"""

import asyncio
import os
import sys

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storyframe.config import Settings
from storyframe.engine.context_chain import (
    ACT,
    PLOT_POINTS,
    SCENE,
    STORY,
    STRUCTURE,
    ContextChain,
)
from storyframe.errors import PrecursorMissing


STORY_INPUT = {
    "title": "Low Orbit",
    "logline": "A grounded pilot steals back her ship.",
    "characters": [
        {"name": "Ava", "description": "Main character: Ava"},
        {"name": "Rook", "description": "A smuggler with debts"},
    ],
    "tone": "Tense",
    "genre": "Sci-fi",
    "totalScenes": 70,
    "influences": {"films": ["Alien"]},
}

STRUCTURE_MAP = {
    "resolution": {"name": "Resolution", "description": "She lands."},
    "setup": {"name": "Setup", "description": "She is grounded."},
    "climax": {"name": "Climax", "description": "She takes the ship."},
}

TEMPLATE = {"name": "Three Act Structure", "structure": STRUCTURE_MAP}


def build_to(level: int) -> ContextChain:
    """Build a chain with every level up to and including ``level``."""
    chain = ContextChain()
    if level >= STORY:
        chain.build_story(STORY_INPUT)
    if level >= STRUCTURE:
        chain.build_structure(STRUCTURE_MAP, TEMPLATE)
    if level >= ACT:
        chain.build_act("climax", STRUCTURE_MAP["climax"], 2)
    if level >= PLOT_POINTS:
        asyncio.run(chain.build_plot_points(["She boards", "She flies"], 6))
    if level >= SCENE:
        chain.build_scene(0, 1, None, 2)
    return chain


class TestBuildOrder:
    def test_all_levels_in_sequence(self):
        chain = build_to(SCENE)
        for level in (STORY, STRUCTURE, ACT, PLOT_POINTS, SCENE):
            assert chain.has(level)

    def test_structure_without_story(self):
        with pytest.raises(PrecursorMissing) as exc:
            ContextChain().build_structure(STRUCTURE_MAP, TEMPLATE)
        assert exc.value.level == STRUCTURE
        assert exc.value.required_level == STORY

    def test_act_without_structure(self):
        with pytest.raises(PrecursorMissing):
            build_to(STORY).build_act("setup", STRUCTURE_MAP["setup"], 1)

    def test_plot_points_without_act(self):
        chain = build_to(STRUCTURE)
        with pytest.raises(PrecursorMissing):
            asyncio.run(chain.build_plot_points(["x"]))

    def test_scene_without_plot_points(self):
        with pytest.raises(PrecursorMissing):
            build_to(ACT).build_scene(0)

    def test_error_message_names_levels(self):
        with pytest.raises(PrecursorMissing, match="Act context must be built before plot points context"):
            asyncio.run(build_to(STRUCTURE).build_plot_points([]))


class TestArena:
    def test_parent_links(self):
        chain = build_to(SCENE)
        scene = chain.get(SCENE)
        plot_points = chain.get(PLOT_POINTS)

        assert scene.parent == plot_points.index
        assert chain.get(STORY).parent is None
        assert chain.get(STRUCTURE).parent == chain.get(STORY).index

    def test_rebuilding_act_invalidates_dependents(self):
        chain = build_to(SCENE)
        old_plot_points = chain.get(PLOT_POINTS)
        old_scene = chain.get(SCENE)

        chain.build_act("setup", STRUCTURE_MAP["setup"], 1)

        assert chain.act.key == "setup"
        assert chain.plot_points is None
        assert chain.scene is None
        assert old_plot_points.stale and old_scene.stale
        with pytest.raises(PrecursorMissing):
            chain.build_scene(0)

    def test_rebuild_replaces_single_slot(self):
        chain = build_to(STORY)
        first = chain.get(STORY)
        chain.build_story({"title": "Second"})

        assert chain.story.title == "Second"
        assert first.stale
        assert len(chain.nodes) == 2

    def test_rebuilding_top_level_keeps_lower_levels(self):
        chain = build_to(SCENE)
        act_node = chain.get(ACT)

        chain.build_scene(1, 0, None, 2)

        assert chain.get(ACT) is act_node
        assert not act_node.stale
        assert chain.scene.position == 2

    def test_summary_for_missing_level(self):
        assert ContextChain().summary(STORY) is None


class TestStoryLevel:
    def test_generic_descriptions_suppressed(self):
        chain = build_to(STORY)
        assert chain.story.characters == "Ava, Rook (A smuggler with debts)"

    def test_project_data_overrides_story_input(self):
        chain = ContextChain()
        chain.build_story(
            STORY_INPUT,
            project_data={
                "projectCharacters": [{"name": "Mara", "description": "Ship AI"}],
                "influences": {"books": ["Dune"]},
            },
        )
        assert chain.story.characters == "Mara (Ship AI)"
        assert chain.story.influences == {"books": ["Dune"]}

    def test_plain_string_characters_kept(self):
        chain = ContextChain()
        chain.build_story({"title": "T", "characters": "Ava and Rook"})
        assert chain.story.characters == "Ava and Rook"

    def test_total_scenes_default(self):
        chain = ContextChain()
        chain.build_story({"title": "T"})
        assert chain.story.total_scenes == 70

    def test_prompt_and_system_message_recorded(self):
        chain = ContextChain()
        chain.build_story(STORY_INPUT, "Think Ridley Scott.", "You are a writer.")
        assert chain.story.original_prompt == "Think Ridley Scott."
        assert chain.story.system_message == "You are a writer."


class TestStructureAndAct:
    def test_structure_uses_resolved_order(self):
        chain = build_to(STRUCTURE)
        assert chain.structure.act_keys == ["setup", "climax", "resolution"]
        assert chain.structure.total_acts == 3
        assert chain.structure.order_confident is True
        assert chain.chronological_order() == ["setup", "climax", "resolution"]

    def test_act_defaults(self):
        chain = build_to(STRUCTURE)
        chain.build_act("midpoint", None, 2)

        assert chain.act.name == "midpoint"
        assert chain.act.description == "No description available"
        assert chain.act.total_acts == 3
        assert chain.act.position == 2

    def test_act_user_directions(self):
        chain = build_to(STRUCTURE)
        chain.build_act("setup", {"name": "Setup", "userDirections": "Open on rain"}, 1)
        assert chain.act.user_directions == "Open on rain"


class TestPlotPointsAndScene:
    def test_plot_points_without_causality_source(self):
        chain = build_to(PLOT_POINTS)
        plot_points = chain.plot_points

        assert plot_points.plot_points == ["She boards", "She flies"]
        assert plot_points.total_plot_points == 2
        assert plot_points.total_scenes == 6
        assert plot_points.previous_plot_points == []
        assert plot_points.has_previous_plot_points is False

    def test_scene_budget_note(self):
        chain = build_to(PLOT_POINTS)
        # compute(70, 3, 3) clamps to 3
        assert chain.plot_points.scenes_per_plot_point == 3
        assert chain.plot_points.scene_distribution == "2 plot points for 6 scenes (3 scenes per plot point)"

    def test_total_scenes_falls_back_to_count(self):
        chain = build_to(ACT)
        asyncio.run(chain.build_plot_points(["a", "b", "c"]))
        assert chain.plot_points.total_scenes == 3
        assert chain.plot_points.scene_distribution == "1:1 plot point to scene ratio"

    def test_scene_assignment(self):
        chain = build_to(SCENE)
        scene = chain.scene

        assert scene.scene_index == 0
        assert scene.position == 1
        assert scene.total_in_act == 2
        assert scene.plot_point_index == 1
        assert scene.assigned_plot_point == "She flies"
        assert scene.title == "New Scene"

    def test_existing_scene_title(self):
        chain = build_to(PLOT_POINTS)
        chain.build_scene(2, None, {"title": "Hangar"}, 4)

        assert chain.scene.title == "Hangar"
        assert chain.scene.assigned_plot_point is None
        assert chain.scene.position == 3

    def test_injected_settings_drive_scene_split(self):
        settings = Settings(plot_points_per_unit_estimate=1, max_scenes_per_plot_point=5)
        chain = ContextChain(settings=settings)
        chain.build_story({"title": "T", "totalScenes": 40})
        chain.build_structure(
            {"setup": {"name": "Setup"}, "climax": {"name": "Climax"}},
            {"name": "Custom Two Part"},
        )
        chain.build_act("setup", {"name": "Setup"}, 1)
        asyncio.run(chain.build_plot_points(["a"]))

        # 40 / (2 * 1) == 20, capped at the injected maximum of 5
        assert chain.plot_points.scenes_per_plot_point == 5
