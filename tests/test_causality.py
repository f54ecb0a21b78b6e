"""
Tests for causal history reconstruction from persisted plot points.

Covers chronological ordering independent of storage order, legacy plot-point
shapes, the single handoff marker and the skip-don't-fail policy for missing
data.
"""

import asyncio
import os
import sys
from unittest.mock import AsyncMock

import pytest

# Add project root to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from storyframe.engine.causality import CausalityLoader, CausalitySource, preceding_acts
from storyframe.engine.context_chain import ContextChain
from storyframe.engine.order_resolver import OrderResolver, TemplateOrderRegistry
from storyframe.services.project_store import InMemoryProjectStore


ORDER = ["setup", "confrontation", "resolution"]

PROJECT = {
    "storyInput": {"title": "Low Orbit", "totalScenes": 30},
    "generatedStructure": {
        "resolution": {"name": "Resolution"},
        "confrontation": {"name": "Confrontation"},
        "setup": {"name": "Setup"},
    },
    "templateData": {"name": "Three Part", "id": "three-part"},
    "plotPoints": {
        # Stored out of chronological order on purpose
        "confrontation": {"0": "x", "1": "y"},
        "setup": ["s1", "s2", "s3"],
    },
}


def load(store, current, order=ORDER, act_names=None):
    return asyncio.run(CausalityLoader(store).load("p1", current, order, act_names))


class TestPrecedingActs:
    def test_prefix(self):
        assert preceding_acts("resolution", ORDER) == ["setup", "confrontation"]

    def test_first_act(self):
        assert preceding_acts("setup", ORDER) == []

    def test_unknown_act(self):
        assert preceding_acts("epilogue", ORDER) == []


class TestCausalityLoader:
    def test_list_and_legacy_map_in_chronological_order(self):
        store = InMemoryProjectStore({"p1": PROJECT})

        entries = load(store, "resolution")

        assert [e.text for e in entries] == ["s1", "s2", "s3", "x", "y"]
        assert [e.act_key for e in entries] == ["setup"] * 3 + ["confrontation"] * 2
        assert [e.index_within_act for e in entries] == [0, 1, 2, 0, 1]
        assert [e.is_last_overall for e in entries] == [False, False, False, False, True]

    def test_only_earlier_acts_loaded(self):
        store = InMemoryProjectStore({"p1": PROJECT})

        entries = load(store, "confrontation")

        assert [e.text for e in entries] == ["s1", "s2", "s3"]
        assert entries[-1].is_last_overall

    def test_first_act_skips_store(self):
        store = AsyncMock()
        assert load(store, "setup") == []
        store.get_project.assert_not_called()

    def test_missing_project_is_not_fatal(self):
        assert load(InMemoryProjectStore(), "resolution") == []

    def test_missing_act_data_is_skipped(self):
        project = dict(PROJECT, plotPoints={"confrontation": ["c1"], "setup": []})
        store = InMemoryProjectStore({"p1": project})

        entries = load(store, "resolution")

        assert [e.text for e in entries] == ["c1"]
        assert entries[0].is_last_overall

    def test_no_plot_points_at_all(self):
        project = dict(PROJECT, plotPoints={})
        assert load(InMemoryProjectStore({"p1": project}), "resolution") == []

    def test_legacy_map_sorted_numerically(self):
        project = dict(PROJECT, plotPoints={"setup": {"10": "k", "2": "c", "0": "a"}})
        entries = load(InMemoryProjectStore({"p1": project}), "confrontation")
        assert [e.text for e in entries] == ["a", "c", "k"]

    def test_wrapped_form_with_dict_items(self):
        project = dict(PROJECT, plotPoints={
            "setup": {"plotPoints": [{"plotPoint": "a"}, "b"], "totalScenesForAct": 6},
        })
        entries = load(InMemoryProjectStore({"p1": project}), "confrontation")
        assert [e.text for e in entries] == ["a", "b"]

    def test_act_names_used_when_given(self):
        store = InMemoryProjectStore({"p1": PROJECT})
        entries = load(store, "confrontation", act_names={"setup": "The Setup"})
        assert {e.act_name for e in entries} == {"The Setup"}

    def test_act_name_defaults_to_key(self):
        entries = load(InMemoryProjectStore({"p1": PROJECT}), "confrontation")
        assert entries[0].act_name == "setup"

    def test_store_errors_propagate(self):
        store = AsyncMock()
        store.get_project.side_effect = ConnectionError("db down")
        with pytest.raises(ConnectionError):
            load(store, "resolution")


class TestPlotPointsWithCausality:
    def test_chain_loads_history_in_resolved_order(self):
        registry = TemplateOrderRegistry({"three-part": ORDER})
        chain = ContextChain(order_resolver=OrderResolver(registry))
        store = InMemoryProjectStore({"p1": PROJECT})

        chain.build_story(PROJECT["storyInput"])
        chain.build_structure(PROJECT["generatedStructure"], PROJECT["templateData"])
        chain.build_act("resolution", PROJECT["generatedStructure"]["resolution"], 3)
        asyncio.run(chain.build_plot_points([], causality_source=CausalitySource("p1", store)))

        history = chain.plot_points.previous_plot_points
        assert chain.structure.act_keys == ORDER
        assert len(history) == 5
        assert [e.text for e in history] == ["s1", "s2", "s3", "x", "y"]
        assert [e.act_name for e in history][:1] == ["Setup"]
        assert sum(e.is_last_overall for e in history) == 1
        assert history[-1].text == "y"
        assert chain.plot_points.has_previous_plot_points is True
