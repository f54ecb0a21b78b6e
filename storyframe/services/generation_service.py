"""
Generation flows built on the context chain.

``GenerationService`` loads a project, builds the context chain up to the level
a flow needs, assembles the directive and hands it to the text generator. It
returns raw model output. Parsing and saving are the caller's job, done in an
optional ``persist`` hook that runs before the project lock is released.

Every flow runs under the project's lock so a causal-history read never races
a generation for an earlier act of the same project.
"""
from __future__ import annotations

import dataclasses
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from storyframe.config import Settings, get_settings
from storyframe.engine.causality import CausalitySource, ProjectStore
from storyframe.engine.context_chain import PLOT_POINTS, SCENE, ContextChain
from storyframe.engine.order_resolver import OrderResolver
from storyframe.engine.prompt_assembler import PromptAssembler
from storyframe.errors import PlotPointNotFound, ProjectNotFound, UnknownAct
from storyframe.prompts import (
    PLOT_POINTS_SYSTEM_INSTRUCTION,
    SCENES_SYSTEM_INSTRUCTION,
    creative_direction_block,
    plot_points_instructions,
    plot_points_output_format,
    scenes_instructions,
    scenes_output_format,
)
from storyframe.schemas import ProjectData, ProjectRecord
from storyframe.services.project_locks import ProjectLockRegistry
from storyframe.services.text_generator import TextGenerator
from storyframe.utils.logging_config import ProjectAdapter, get_logger

_logger = get_logger("storyframe.generation")


@dataclasses.dataclass
class GenerationResult:
    project_id: str
    act_key: str
    prompt: str
    raw_text: str
    model: str
    scene_count: int
    plot_point_index: Optional[int] = None
    generated_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(timezone.utc))


# Runs inside the project lock after the generator returns, so the next act's
# causal read sees what it writes.
PersistHook = Callable[[GenerationResult], Awaitable[None]]


class GenerationService:
    def __init__(
        self,
        store: ProjectStore,
        generator: TextGenerator,
        locks: Optional[ProjectLockRegistry] = None,
        settings: Optional[Settings] = None,
        order_resolver: Optional[OrderResolver] = None,
    ):
        self.store = store
        self.generator = generator
        self.locks = locks or ProjectLockRegistry()
        self.settings = settings or get_settings()
        self.order_resolver = order_resolver
        self.assembler = PromptAssembler()

    # ------------------------------------------------------------------
    # Chain construction
    # ------------------------------------------------------------------

    async def _load_project(self, project_id: str) -> ProjectRecord:
        project = await self.store.get_project(project_id)
        if project is None:
            raise ProjectNotFound(project_id)
        return project

    def _act_chain(self, project: ProjectRecord, act_key: str) -> ContextChain:
        """Levels 1-3 for ``act_key``, built from the stored project."""
        chain = ContextChain(order_resolver=self.order_resolver, settings=self.settings)
        story_input = project.story_input
        chain.build_story(
            story_input,
            original_prompt=project.last_used_prompt or story_input.influence_prompt,
            system_message=project.last_used_system_message,
            project_data=ProjectData(
                project_characters=project.project_characters,
                influences=project.influences,
            ),
        )

        template = project.resolved_template()
        structure = project.generated_structure or template.structure
        chain.build_structure(structure, template)

        if act_key not in structure:
            raise UnknownAct(act_key)
        # Acts the template order does not know keep their stored position
        order = chain.chronological_order()
        if act_key not in order:
            order = list(structure)
        chain.build_act(act_key, structure[act_key], order.index(act_key) + 1, len(order))
        return chain

    def _act_scene_target(self, chain: ContextChain, scenes_per_plot_point: int) -> int:
        act_descriptor = chain.structure.structure[chain.act.key]
        predefined = (act_descriptor.model_extra or {}).get("scene_count")
        if isinstance(predefined, int) and predefined > 0:
            return predefined
        return scenes_per_plot_point * self.settings.plot_points_per_act

    async def _plot_points_prompt(self, project_id: str, act_key: str):
        project = await self._load_project(project_id)
        chain = self._act_chain(project, act_key)

        # Build once without plot points to load causal history and the scene split.
        source = CausalitySource(project_id=project_id, store=self.store)
        await chain.build_plot_points([], causality_source=source)
        act_scene_target = self._act_scene_target(chain, chain.plot_points.scenes_per_plot_point)

        count = self.settings.plot_points_per_act
        directive = self.assembler.assemble(
            chain, PLOT_POINTS, plot_points_instructions(count, act_scene_target)
        )
        return f"{directive}{plot_points_output_format(count)}", act_scene_target

    # ------------------------------------------------------------------
    # Flows
    # ------------------------------------------------------------------

    async def build_plot_points_prompt(self, project_id: str, act_key: str) -> str:
        """Level-4 directive for ``act_key`` without calling the generator."""
        prompt, _ = await self._plot_points_prompt(project_id, act_key)
        return prompt

    async def generate_plot_points(
        self,
        project_id: str,
        act_key: str,
        persist: Optional[PersistHook] = None,
    ) -> GenerationResult:
        logger = ProjectAdapter(_logger, project_id=project_id)
        async with self.locks.hold(project_id):
            prompt, act_scene_target = await self._plot_points_prompt(project_id, act_key)
            logger.info("Generating plot points", extra={"act_key": act_key})
            raw_text = await self.generator.generate(
                prompt,
                model=self.settings.model_plot_points,
                temperature=self.settings.generation_temperature,
                max_output_tokens=self.settings.plot_points_max_output_tokens,
                system_instruction=PLOT_POINTS_SYSTEM_INSTRUCTION,
            )
            result = GenerationResult(
                project_id=project_id,
                act_key=act_key,
                prompt=prompt,
                raw_text=raw_text,
                model=self.settings.model_plot_points,
                scene_count=act_scene_target,
            )
            if persist is not None:
                await persist(result)
        return result

    async def generate_scenes_for_plot_point(
        self,
        project_id: str,
        act_key: str,
        plot_point_index: int,
        creative_direction: Optional[str] = None,
        persist: Optional[PersistHook] = None,
    ) -> GenerationResult:
        """Generate the scene sequence for one stored plot point."""
        logger = ProjectAdapter(_logger, project_id=project_id)
        async with self.locks.hold(project_id):
            project = await self._load_project(project_id)
            plot_points = project.act_plot_points(act_key)
            if not 0 <= plot_point_index < len(plot_points):
                raise PlotPointNotFound(act_key, plot_point_index)
            plot_point = plot_points[plot_point_index]

            chain = self._act_chain(project, act_key)
            source = CausalitySource(project_id=project_id, store=self.store)
            await chain.build_plot_points(plot_points, causality_source=source)
            scene_count = chain.plot_points.scenes_per_plot_point
            chain.build_scene(0, plot_point_index, None, scene_count)

            directive = self.assembler.assemble(
                chain, SCENE, scenes_instructions(scene_count, plot_point)
            )
            if creative_direction is None:
                creative_direction = project.scene_direction(act_key, plot_point_index)
            prompt = (
                f"{directive}"
                f"{creative_direction_block(creative_direction)}"
                f"{scenes_output_format(plot_point_index)}"
            )

            logger.info(
                "Generating %d scenes for plot point %d", scene_count, plot_point_index,
                extra={"act_key": act_key},
            )
            raw_text = await self.generator.generate(
                prompt,
                model=self.settings.model_scenes,
                temperature=self.settings.generation_temperature,
                max_output_tokens=self.settings.scenes_max_output_tokens,
                system_instruction=SCENES_SYSTEM_INSTRUCTION,
            )
            result = GenerationResult(
                project_id=project_id,
                act_key=act_key,
                prompt=prompt,
                raw_text=raw_text,
                model=self.settings.model_scenes,
                scene_count=scene_count,
                plot_point_index=plot_point_index,
            )
            if persist is not None:
                await persist(result)
        return result
