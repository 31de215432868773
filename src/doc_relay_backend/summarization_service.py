from __future__ import annotations

import logging
from typing import Any

import openai
from openai import AsyncAzureOpenAI

from .configuration import OpenAISettings
from .errors import ConfigurationError, InvalidInputError, MalformedResponseError, SummarizationError

logger = logging.getLogger(__name__)


def build_openai_client(settings: OpenAISettings) -> AsyncAzureOpenAI:
    if not settings.endpoint or not settings.api_key:
        raise ConfigurationError("AZURE_OPENAI_ENDPOINT and AZURE_OPENAI_API_KEY must be configured")
    return AsyncAzureOpenAI(
        azure_endpoint=settings.endpoint,
        api_key=settings.api_key,
        api_version=settings.api_version,
    )


class SummarizationRelay:
    """Single-shot summarization through a hosted chat model with a fixed system prompt."""

    def __init__(self, client: AsyncAzureOpenAI, settings: OpenAISettings) -> None:
        self.client = client
        self.settings = settings

    async def summarize(self, text: Any) -> str:
        if not isinstance(text, str) or not text.strip():
            raise InvalidInputError("Invalid input: 'text' must be a non-empty string")

        try:
            completion = await self.client.chat.completions.create(
                model=self.settings.deployment,
                messages=[
                    {"role": "system", "content": self.settings.system_prompt},
                    {"role": "user", "content": text},
                ],
                max_tokens=self.settings.max_tokens,
            )
        except openai.APIError as exc:
            logger.error(f"Summarization request failed: {exc}")
            raise SummarizationError(f"Language model request failed: {exc.message}", details=exc.message) from exc

        if not completion.choices:
            raise MalformedResponseError("Language model returned no choices")
        content = completion.choices[0].message.content
        logger.info(f"Summarized {len(text)} characters into {len(content or '')}")
        return content or ""

    async def aclose(self) -> None:
        await self.client.close()
