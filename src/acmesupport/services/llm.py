import asyncio
import logging
from typing import Awaitable, Callable, List

from openai import AsyncOpenAI, OpenAIError

from ..errors import ConfigurationMissingError, ReplyGenerationError
from ..models import Message, Role
from ..settings import Settings, get_settings

logger = logging.getLogger(__name__)

GenerateReply = Callable[[str], Awaitable[str]]


def build_prompt(system_prompt: str, messages: List[Message]) -> str:
    """Render the system instruction followed by the labeled transcript."""
    turns = [
        f"User: {m.content}" if m.role is Role.USER else f"Assistant: {m.content}"
        for m in messages
    ]
    return "\n\n".join([system_prompt, *turns])


class ReplyGenerator:
    """Calls an OpenAI-compatible chat completion endpoint for fallback replies."""

    def __init__(self, settings: Settings | None = None, client: AsyncOpenAI | None = None) -> None:
        self._settings = settings or get_settings()
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self._settings.has_api_key:
                raise ConfigurationMissingError(
                    "OPENAI_API_KEY is not set; model replies are unavailable."
                )
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                base_url=self._settings.openai_base_url,
                timeout=self._settings.request_timeout_seconds,
            )
        return self._client

    async def __call__(self, prompt: str) -> str:
        """Return the model's full reply text for ``prompt``.

        Raises:
            ConfigurationMissingError: No API key is configured.
            ReplyGenerationError: The request failed or returned no text.
        """
        client = self._get_client()
        try:
            response = await client.chat.completions.create(
                model=self._settings.model,
                messages=[{"role": "user", "content": prompt}],
                temperature=self._settings.temperature,
            )
        except (OpenAIError, asyncio.TimeoutError, TimeoutError, ConnectionError) as e:
            logger.error("Model request failed: %s", e)
            raise ReplyGenerationError(f"Model request failed: {e}", e) from e

        try:
            content = response.choices[0].message.content or ""
        except (AttributeError, IndexError, TypeError) as e:
            logger.error("Model response parse failed: %s", e)
            raise ReplyGenerationError("Unexpected response format from model", e) from e

        if not content.strip():
            raise ReplyGenerationError("Model returned an empty reply")
        return content


def get_reply_generator() -> ReplyGenerator:
    """Build a ReplyGenerator from the application settings."""
    return ReplyGenerator(get_settings())
