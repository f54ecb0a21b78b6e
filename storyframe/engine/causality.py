"""
Causal history reconstruction.

Acts are generated independently and on demand, so when plot points are
generated for one act the plot points of every chronologically earlier act
have to be read back from the persisted project and stitched together in
resolved chronological order. The last entry of the whole sequence is the
handoff point the new act must continue from.
"""
from __future__ import annotations

import dataclasses
from typing import List, Mapping, Optional, Protocol, Sequence, runtime_checkable

from storyframe.schemas import ProjectRecord
from storyframe.utils.logging_config import ProjectAdapter, get_logger

_logger = get_logger("storyframe.causality")


@runtime_checkable
class ProjectStore(Protocol):
    """Persistence collaborator: project lookup by identifier."""

    async def get_project(self, project_id: str) -> Optional[ProjectRecord]:
        ...


@dataclasses.dataclass(frozen=True)
class CausalEntry:
    act_key: str
    act_name: str
    text: str
    index_within_act: int
    is_last_overall: bool = False


@dataclasses.dataclass(frozen=True)
class CausalitySource:
    """Where the plot-points builder reads causal history from."""
    project_id: str
    store: ProjectStore


def preceding_acts(current_act_key: str, chronological_order: Sequence[str]) -> List[str]:
    """Keys strictly before ``current_act_key``; empty when the key is not in the order."""
    try:
        position = list(chronological_order).index(current_act_key)
    except ValueError:
        return []
    return list(chronological_order[:position])


class CausalityLoader:
    """Loads previously generated plot points for all earlier acts."""

    def __init__(self, store: ProjectStore):
        self.store = store

    async def load(
        self,
        project_id: str,
        current_act_key: str,
        chronological_order: Sequence[str],
        act_names: Optional[Mapping[str, str]] = None,
    ) -> List[CausalEntry]:
        logger = ProjectAdapter(_logger, project_id=project_id)
        earlier = preceding_acts(current_act_key, chronological_order)
        if not earlier:
            logger.debug("No earlier acts before %s; causal history is empty", current_act_key)
            return []

        project = await self.store.get_project(project_id)
        if project is None:
            logger.warning("Project not found while loading causal history")
            return []

        act_names = act_names or {}
        entries: List[CausalEntry] = []
        for act_key in earlier:
            plot_points = project.act_plot_points(act_key)
            if not plot_points:
                logger.debug("No plot points stored for %s; skipping", act_key, extra={"act_key": act_key})
                continue
            act_name = act_names.get(act_key) or act_key
            entries.extend(
                CausalEntry(act_key=act_key, act_name=act_name, text=text, index_within_act=index)
                for index, text in enumerate(plot_points)
            )

        if entries:
            entries[-1] = dataclasses.replace(entries[-1], is_last_overall=True)

        logger.info(
            "Loaded %d causal plot points from %d earlier acts",
            len(entries), len(earlier), extra={"act_key": current_act_key},
        )
        return entries
