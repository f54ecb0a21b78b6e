"""
Instruction blocks appended to assembled directives.

The context chain supplies what the story is; these blocks say what to
produce. Each returns plain text for ``PromptAssembler.assemble``'s
``custom_instructions`` argument or for the trailing output-format block.
"""
from __future__ import annotations

from typing import Optional


PLOT_POINTS_SYSTEM_INSTRUCTION = (
    "You are a professional screenwriter. Generate clear, causal plot points that describe "
    "concrete actions and events, never internal feelings. Always respond with valid JSON."
)

SCENES_SYSTEM_INSTRUCTION = (
    "You are a professional screenwriter generating scene sequences within a hierarchical "
    "story structure. Return ONLY valid JSON, with no text before or after it."
)


def plot_points_instructions(plot_point_count: int, act_scene_target: int) -> str:
    return f"""PLOT POINTS GENERATION WITH INTER-ACT CAUSALITY:
1. Break this act into {plot_point_count} causally connected plot points (they will be expanded into {act_scene_target} scenes).
2. If earlier plot points are listed above, the FIRST new plot point must continue directly from the marked one.
3. Each plot point describes a CONCRETE ACTION or EVENT the audience can see, not an internal state.
4. Connect plot points with "BUT" (complication) and "THEREFORE" (consequence).
5. Show character growth through choices under pressure.
6. Do not repeat earlier events; build on their consequences."""


def plot_points_output_format(plot_point_count: int) -> str:
    items = ",\n".join(f'    "Plot point {n}"' for n in range(1, plot_point_count + 1))
    return f"""Return ONLY a JSON object with this exact structure:
{{
  "plotPoints": [
{items}
  ]
}}"""


def scenes_instructions(scene_count: int, plot_point: str) -> str:
    return f"""MULTIPLE SCENES GENERATION FROM SINGLE PLOT POINT:
1. Create exactly {scene_count} scenes that together implement this plot point: "{plot_point}"
2. The scenes form a sequence that shows progression, each advancing the plot point's dramatic purpose.
3. Vary scene types: dialogue-heavy, action, introspective.
4. Each scene needs: title, location, time_of_day, description (3-6 sentences), characters, emotional_beats.
5. Write in cinematic language: observable actions and concrete details a camera could capture."""


def scenes_output_format(plot_point_index: int) -> str:
    return f"""Return ONLY valid JSON in this exact format:
{{
  "scenes": [
    {{
      "title": "Scene Title",
      "location": "Specific location",
      "time_of_day": "Morning/Afternoon/Evening/Night",
      "description": "What happens in this scene - be specific and visual",
      "characters": ["Character1", "Character2"],
      "emotional_beats": ["primary emotion", "secondary emotion"],
      "plotPointIndex": {plot_point_index},
      "sequencePosition": 1
    }}
  ]
}}"""


def creative_direction_block(direction: Optional[str]) -> str:
    if not direction or not direction.strip():
        return ""
    return (
        f"User Creative Direction for Scenes: {direction.strip()}\n"
        "IMPORTANT: Incorporate this creative direction into the scenes for this plot point.\n\n"
    )
