from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache
from typing import Optional

class Settings(BaseSettings):
    app_name: str = "storyframe"
    # Default to a local postgres database if not set in env
    database_url: str = "postgresql+asyncpg://localhost/storyframe"

    # Scene budget used when a story input carries no totalScenes
    default_total_scenes: int = 70

    # Projected plot points per structural unit. The divisor of the scene
    # distribution must stay stable while units are populated one at a time.
    plot_points_per_unit_estimate: int = 3
    min_scenes_per_plot_point: int = 1
    max_scenes_per_plot_point: int = 3

    # Tie-break between overlapping template ids: "first_match" | "longest_match"
    order_match_strategy: str = "first_match"

    # Optional; the genai client reads GOOGLE_API_KEY itself when unset
    google_api_key: Optional[str] = None

    # Model configuration - can be overridden via environment variables
    model_plot_points: str = "gemini-2.5-flash"
    model_scenes: str = "gemini-2.5-flash"

    generation_temperature: float = 0.7
    plot_points_max_output_tokens: int = 1500
    scenes_max_output_tokens: int = 3000

    # Plot points requested per act during plot-point generation
    plot_points_per_act: int = 4

    log_file: str = "storyframe.log"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

@lru_cache
def get_settings():
    return Settings()
