"""
Renders a context chain into a single generation directive.

Sections render in level order (story, structure, causal history, current act,
scene, custom instructions) and stop at the requested target level. For plot
point generation (target level 4) the current-act section moves up to sit
directly under the story details: models weight later, more specific
instructions heavily, and plot points must follow the act description rather
than drift toward the general logline.
"""
from __future__ import annotations

from typing import List, Optional

from storyframe.engine.causality import CausalEntry
from storyframe.engine.context_chain import (
    ACT,
    PLOT_POINTS,
    SCENE,
    STORY,
    STRUCTURE,
    ActContext,
    ContextChain,
)
from storyframe.utils.logging_config import get_logger

logger = get_logger("storyframe.prompt")

HANDOFF_MARKER = "🔗"

CAUSAL_HISTORY_HEADING = "STORY PROGRESSION (Previous Plot Points):"
ACT_HEADING = "CURRENT STORY ACT:"
ACT_PRECEDENCE_HEADING = "CURRENT STORY ACT (TAKES PRECEDENCE):"


def render_story(chain: ContextChain) -> str:
    story = chain.story
    lines = []
    if story.original_prompt:
        lines.append(story.original_prompt.rstrip())
        lines.append("")
        lines.append("Based on the following story concept and the creative direction above:")
        lines.append("")
    lines.append("STORY DETAILS:")
    lines.append(f"- Title: {story.title}")
    lines.append(f"- Logline: {story.logline}")
    lines.append(f"- Main Characters: {story.characters}")
    return "\n".join(lines) + "\n\n"


def render_structure(chain: ContextChain) -> str:
    return f"STRUCTURE: {chain.structure.template.name}\n\n"


def render_causal_history(entries: List[CausalEntry]) -> str:
    """Group entries by act; the handoff marker goes on the single last entry."""
    if not entries:
        return ""
    lines = [CAUSAL_HISTORY_HEADING]
    current_act: Optional[str] = None
    for entry in entries:
        if entry.act_key != current_act:
            current_act = entry.act_key
            lines.append("")
            lines.append(f"{entry.act_name}:")
        marker = f" {HANDOFF_MARKER}" if entry.is_last_overall else ""
        lines.append(f"  {entry.index_within_act + 1}. {entry.text}{marker}")
    lines.append("")
    lines.append("The first new plot point must follow causally from the marked plot point.")
    return "\n".join(lines) + "\n\n"


def render_act(act: ActContext, takes_precedence: bool) -> str:
    lines = [ACT_PRECEDENCE_HEADING if takes_precedence else ACT_HEADING]
    lines.append(act.name)
    lines.append(f"Position: Act {act.position} of {act.total_acts}")
    lines.append(f"Purpose: {act.description}")
    if act.character_development:
        lines.append(f"Character Development: {act.character_development}")
    if act.user_directions and act.user_directions.strip():
        lines.append(f"User Creative Direction: {act.user_directions.strip()}")
        if takes_precedence:
            lines.append("MANDATORY: Incorporate this creative direction into every plot point for this act.")
    if takes_precedence:
        lines.append("")
        lines.append(
            "IMPORTANT: This act's description takes precedence over the general story details above. "
            "Generate plot points that match THIS act."
        )
    return "\n".join(lines) + "\n\n"


def render_scene(chain: ContextChain) -> str:
    scene = chain.scene
    lines = ["SCENE CONTEXT:"]
    lines.append(f"- Position: Scene {scene.position}/{scene.total_in_act} in this act")
    lines.append(f"- Current Title: {scene.title}")
    if scene.assigned_plot_point:
        lines.append(f"- ASSIGNED Plot Point: {scene.assigned_plot_point}")
        lines.append(f"- Plot Point Index: {scene.plot_point_index + 1}")
    return "\n".join(lines) + "\n\n"


def render_custom_instructions(custom_instructions: str) -> str:
    return f"SPECIFIC INSTRUCTIONS:\n{custom_instructions.strip()}\n\n"


class PromptAssembler:
    """Assembles the directive for one generation call from a context chain."""

    def assemble(
        self,
        chain: ContextChain,
        target_level: int,
        custom_instructions: str = "",
    ) -> str:
        if not STORY <= target_level <= SCENE:
            raise ValueError(f"target_level must be between 1 and 5, got {target_level}")

        plot_point_generation = target_level == PLOT_POINTS
        act = chain.act if chain.has(ACT) and target_level >= ACT else None

        sections: List[str] = []
        if chain.has(STORY):
            sections.append(render_story(chain))

        if act is not None and plot_point_generation:
            sections.append(render_act(act, takes_precedence=True))

        if chain.has(STRUCTURE) and target_level >= STRUCTURE:
            sections.append(render_structure(chain))

        if chain.has(PLOT_POINTS) and target_level >= PLOT_POINTS:
            sections.append(render_causal_history(chain.plot_points.previous_plot_points))

        if act is not None and not plot_point_generation:
            sections.append(render_act(act, takes_precedence=False))

        if chain.has(SCENE) and target_level >= SCENE:
            sections.append(render_scene(chain))

        if custom_instructions:
            sections.append(render_custom_instructions(custom_instructions))

        prompt = "".join(sections)
        logger.debug("Assembled directive of %d chars", len(prompt), extra={"target_level": target_level})
        return prompt


def assemble(chain: ContextChain, target_level: int = SCENE, custom_instructions: str = "") -> str:
    return PromptAssembler().assemble(chain, target_level, custom_instructions)
