"""
Generation collaborator.

The engine hands a finished directive to a :class:`TextGenerator` and gets raw
text back. Nothing here parses or validates the model output.
"""
from __future__ import annotations

from typing import Optional, Protocol, runtime_checkable

from google.genai import Client as GenAIClient
from google.genai import types

from storyframe.config import get_settings
from storyframe.utils.logging_config import get_logger, log_duration

logger = get_logger("storyframe.generator")


@runtime_checkable
class TextGenerator(Protocol):
    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        max_output_tokens: int,
        system_instruction: Optional[str] = None,
    ) -> str:
        ...


class GenAITextGenerator:
    """Text generator backed by the ``google-genai`` async client."""

    def __init__(self, client: Optional[GenAIClient] = None, api_key: Optional[str] = None):
        self._client = client
        self._api_key = api_key or get_settings().google_api_key

    @property
    def client(self) -> GenAIClient:
        if self._client is None:
            # Falls back to GOOGLE_API_KEY from the environment when no key is configured
            self._client = GenAIClient(api_key=self._api_key) if self._api_key else GenAIClient()
        return self._client

    async def generate(
        self,
        prompt: str,
        *,
        model: str,
        temperature: float,
        max_output_tokens: int,
        system_instruction: Optional[str] = None,
    ) -> str:
        config = types.GenerateContentConfig(
            temperature=temperature,
            max_output_tokens=max_output_tokens,
            system_instruction=system_instruction,
        )
        with log_duration(logger, "generate_content finished", metadata={"model": model}):
            response = await self.client.aio.models.generate_content(
                model=model,
                contents=prompt,
                config=config,
            )
        return response.text or ""
