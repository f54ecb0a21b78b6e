"""
Hierarchical context chain for story generation.

A chain holds five levels of context, each built on the one below it:

1. story     : the original concept, characters and influences
2. structure : the template and its resolved chronological unit order
3. act       : the structural unit currently being worked on
4. plot_points : the act's plot points plus causal history from earlier acts
5. scene     : a single scene within the act

Nodes live in an append-only arena addressed by index, each pointing at its
parent node. Only one node per level is live at a time. Rebuilding a level
appends a new node and marks every live node at that level and above as stale,
so dependants of a replaced level are invalidated rather than silently kept.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from storyframe.config import Settings, get_settings
import storyframe.engine.distribution as distribution
from storyframe.engine.causality import CausalEntry, CausalityLoader, CausalitySource
from storyframe.engine.order_resolver import OrderResolver, TemplateOrderRegistry
from storyframe.errors import LEVEL_NAMES, PrecursorMissing
from storyframe.schemas import (
    ActDescriptor,
    ProjectData,
    StoryInput,
    TemplateDescriptor,
    format_characters,
)
from storyframe.utils.logging_config import get_logger

logger = get_logger("storyframe.context")

STORY, STRUCTURE, ACT, PLOT_POINTS, SCENE = 1, 2, 3, 4, 5


@dataclasses.dataclass
class StoryContext:
    title: str
    logline: str
    characters: str
    tone: Optional[str]
    genre: Optional[str]
    total_scenes: int
    influences: Dict[str, Any]
    original_prompt: Optional[str] = None
    system_message: Optional[str] = None


@dataclasses.dataclass
class StructureContext:
    template: TemplateDescriptor
    structure: Dict[str, ActDescriptor]
    act_keys: List[str]
    total_acts: int
    order_confident: bool = True
    template_id: Optional[str] = None


@dataclasses.dataclass
class ActContext:
    key: str
    name: str
    description: str
    character_development: Optional[str]
    position: int
    total_acts: int
    user_directions: Optional[str] = None


@dataclasses.dataclass
class PlotPointsContext:
    plot_points: List[str]
    total_plot_points: int
    total_scenes: int
    scene_distribution: str
    scenes_per_plot_point: int
    previous_plot_points: List[CausalEntry] = dataclasses.field(default_factory=list)
    has_previous_plot_points: bool = False


@dataclasses.dataclass
class SceneContext:
    scene_index: int
    position: int
    total_in_act: int
    plot_point_index: Optional[int] = None
    assigned_plot_point: Optional[str] = None
    existing_scene: Optional[Dict[str, Any]] = None
    title: str = "New Scene"


@dataclasses.dataclass
class ContextNode:
    """One record in the chain's arena."""
    index: int
    level: int
    kind: str
    parent: Optional[int]
    data: Any
    created_at: datetime
    stale: bool = False


def _as_model(value: Any, model):
    if value is None:
        return model()
    if isinstance(value, model):
        return value
    return model.model_validate(value)


class ContextChain:
    """Builds and holds the five-level context for one generation request."""

    def __init__(
        self,
        order_resolver: Optional[OrderResolver] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.order_resolver = order_resolver or OrderResolver(
            TemplateOrderRegistry(strategy=self.settings.order_match_strategy)
        )
        self._nodes: List[ContextNode] = []
        self._live: Dict[int, int] = {}

    # ------------------------------------------------------------------
    # Arena
    # ------------------------------------------------------------------

    @property
    def nodes(self) -> List[ContextNode]:
        return list(self._nodes)

    def get(self, level: int) -> Optional[ContextNode]:
        """Live node for ``level``, or None."""
        index = self._live.get(level)
        return self._nodes[index] if index is not None else None

    def summary(self, level: int) -> Optional[Any]:
        """Payload of the live node for ``level``, or None."""
        node = self.get(level)
        return node.data if node is not None else None

    def has(self, level: int) -> bool:
        return level in self._live

    @property
    def story(self) -> Optional[StoryContext]:
        return self.summary(STORY)

    @property
    def structure(self) -> Optional[StructureContext]:
        return self.summary(STRUCTURE)

    @property
    def act(self) -> Optional[ActContext]:
        return self.summary(ACT)

    @property
    def plot_points(self) -> Optional[PlotPointsContext]:
        return self.summary(PLOT_POINTS)

    @property
    def scene(self) -> Optional[SceneContext]:
        return self.summary(SCENE)

    def chronological_order(self) -> List[str]:
        structure = self.structure
        return list(structure.act_keys) if structure else []

    def _require(self, level: int) -> None:
        if level > STORY and not self.has(level - 1):
            raise PrecursorMissing(level, level - 1)

    def _append(self, level: int, data: Any) -> ContextNode:
        self._require(level)

        for stale_level in sorted(lvl for lvl in self._live if lvl >= level):
            stale_node = self._nodes[self._live.pop(stale_level)]
            stale_node.stale = True
            if stale_level > level:
                logger.debug(
                    "Invalidated %s context after rebuilding %s",
                    LEVEL_NAMES[stale_level], LEVEL_NAMES[level],
                )

        node = ContextNode(
            index=len(self._nodes),
            level=level,
            kind=LEVEL_NAMES[level],
            parent=self._live.get(level - 1),
            data=data,
            created_at=datetime.now(timezone.utc),
        )
        self._nodes.append(node)
        self._live[level] = node.index
        return node

    # ------------------------------------------------------------------
    # Level builders
    # ------------------------------------------------------------------

    def build_story(
        self,
        story_input: Union[StoryInput, Mapping[str, Any]],
        original_prompt: Optional[str] = None,
        system_message: Optional[str] = None,
        project_data: Union[ProjectData, Mapping[str, Any], None] = None,
    ) -> ContextNode:
        """Level 1. Project-level characters and influences override the story input's."""
        story_input = _as_model(story_input, StoryInput)
        project = _as_model(project_data, ProjectData)

        if project.project_characters:
            characters = format_characters(project.project_characters)
        else:
            characters = format_characters(story_input.characters)

        influences = project.influences or story_input.influences or {}

        return self._append(STORY, StoryContext(
            title=story_input.title,
            logline=story_input.logline,
            characters=characters,
            tone=story_input.tone,
            genre=story_input.genre,
            total_scenes=story_input.total_scenes or self.settings.default_total_scenes,
            influences=influences,
            original_prompt=original_prompt,
            system_message=system_message,
        ))

    def build_structure(
        self,
        structure_map: Mapping[str, Any],
        template_descriptor: Union[TemplateDescriptor, Mapping[str, Any], None],
    ) -> ContextNode:
        """Level 2. Resolves the chronological unit order for the template."""
        self._require(STRUCTURE)
        template = _as_model(template_descriptor, TemplateDescriptor)
        structure = {
            key: _as_model(act, ActDescriptor) for key, act in structure_map.items()
        }

        resolution = self.order_resolver.resolve(template.name, structure, template.id)

        return self._append(STRUCTURE, StructureContext(
            template=template,
            structure=structure,
            act_keys=resolution.ordered_keys,
            total_acts=len(resolution.ordered_keys),
            order_confident=resolution.confident,
            template_id=resolution.template_id,
        ))

    def build_act(
        self,
        key: str,
        act_descriptor: Union[ActDescriptor, Mapping[str, Any], None],
        position: int,
        total_acts: Optional[int] = None,
    ) -> ContextNode:
        """Level 3. ``position`` is 1-based; ``total_acts`` defaults to the resolved unit count."""
        self._require(ACT)
        act = _as_model(act_descriptor, ActDescriptor)

        return self._append(ACT, ActContext(
            key=key,
            name=act.name or key,
            description=act.description or "No description available",
            character_development=act.character_development or "No character development available",
            position=position,
            total_acts=total_acts or self.structure.total_acts,
            user_directions=act.user_directions,
        ))

    async def build_plot_points(
        self,
        plot_points: Sequence[str],
        total_scenes_target: Optional[int] = None,
        causality_source: Optional[CausalitySource] = None,
    ) -> ContextNode:
        """Level 4. Loads causal history from earlier acts when a source is given."""
        self._require(PLOT_POINTS)
        story = self.story
        structure = self.structure
        act = self.act

        previous: List[CausalEntry] = []
        if causality_source is not None:
            loader = CausalityLoader(causality_source.store)
            previous = await loader.load(
                causality_source.project_id,
                act.key,
                structure.act_keys,
                act_names={key: desc.name or key for key, desc in structure.structure.items()},
            )
        else:
            logger.debug("No causality source provided; skipping earlier acts", extra={"act_key": act.key})

        plot_points = list(plot_points)
        scenes_per_plot_point = distribution.compute(
            story.total_scenes, structure.total_acts, settings=self.settings
        )

        return self._append(PLOT_POINTS, PlotPointsContext(
            plot_points=plot_points,
            total_plot_points=len(plot_points),
            total_scenes=total_scenes_target or len(plot_points),
            scene_distribution=distribution.describe(
                len(plot_points), total_scenes_target, scenes_per_plot_point
            ),
            scenes_per_plot_point=scenes_per_plot_point,
            previous_plot_points=previous,
            has_previous_plot_points=bool(previous),
        ))

    def build_scene(
        self,
        scene_index: int,
        plot_point_index: Optional[int] = None,
        existing_scene: Optional[Mapping[str, Any]] = None,
        total_scenes_in_act: int = 1,
    ) -> ContextNode:
        """Level 5. ``scene_index`` is 0-based."""
        self._require(SCENE)
        plot_points = self.plot_points.plot_points

        assigned = None
        if plot_point_index is not None and 0 <= plot_point_index < len(plot_points):
            assigned = plot_points[plot_point_index]

        existing = dict(existing_scene) if existing_scene else None
        title = (existing or {}).get("title") or "New Scene"

        return self._append(SCENE, SceneContext(
            scene_index=scene_index,
            position=scene_index + 1,
            total_in_act=total_scenes_in_act,
            plot_point_index=plot_point_index,
            assigned_plot_point=assigned,
            existing_scene=existing,
            title=title,
        ))
