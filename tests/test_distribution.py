"""Tests for the scene-per-plot-point distribution."""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storyframe.config import Settings
from storyframe.engine import distribution


class TestCompute:
    def test_standard_budget(self):
        # round(70 / 45) == 2
        assert distribution.compute(70, 15, 3) == 2

    def test_default_estimate_is_three(self):
        assert distribution.compute(70, 15) == 2

    def test_small_budget_never_below_one(self):
        assert distribution.compute(5, 15, 3) == 1
        assert distribution.compute(0, 15, 3) == 1

    def test_large_budget_capped_at_three(self):
        assert distribution.compute(1000, 3, 3) == 3

    def test_halves_round_up(self):
        # 45 / 18 == 2.5
        assert distribution.compute(45, 6, 3) == 3

    def test_no_units_returns_minimum(self):
        assert distribution.compute(70, 0, 3) == 1

    def test_injected_settings(self):
        settings = Settings(plot_points_per_unit_estimate=1, max_scenes_per_plot_point=5)
        # 40 / (2 * 1) == 20, capped at 5
        assert distribution.compute(40, 2, settings=settings) == 5
        assert distribution.compute(40, 2) == 3

    def test_injected_minimum(self):
        settings = Settings(min_scenes_per_plot_point=2)
        assert distribution.compute(0, 15, settings=settings) == 2


class TestDescribe:
    def test_without_budget(self):
        assert distribution.describe(4, None) == "1:1 plot point to scene ratio"

    def test_with_budget(self):
        assert distribution.describe(4, 12) == "4 plot points for 12 scenes"

    def test_with_scenes_per_plot_point(self):
        note = distribution.describe(4, 12, 3)
        assert note == "4 plot points for 12 scenes (3 scenes per plot point)"


class TestDistribute:
    def test_every_plot_point_gets_same_count(self):
        allocations = distribution.distribute(["a", "b", "c"], 70, 15)

        assert [a.scene_count for a in allocations] == [2, 2, 2]
        assert [a.plot_point_index for a in allocations] == [0, 1, 2]
        assert [a.plot_point for a in allocations] == ["a", "b", "c"]

    def test_matches_compute(self):
        allocations = distribution.distribute(["a"], 30, 4, 2)
        assert allocations[0].scene_count == distribution.compute(30, 4, 2)
