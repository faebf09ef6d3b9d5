"""OpenAI LLM provider implementation."""

import logging
from typing import Any

from openai import OpenAI

from agent_workflow_runner.core.config import LLMConfig
from agent_workflow_runner.llm.provider import LLMProvider

logger = logging.getLogger(__name__)


class OpenAIProvider(LLMProvider):
    """Chat completions against the OpenAI API.

    Agents choose their own model and sampling settings; the configured
    model and temperature only apply when an agent leaves them unset.
    """

    def __init__(self, config: LLMConfig) -> None:
        """
        Raises:
            ValueError: If API key is not provided.
        """
        if not config.openai_api_key:
            raise ValueError("OpenAI API key is required (set WORKFLOW_LLM_OPENAI_API_KEY)")

        self.config = config
        self.client = OpenAI(api_key=config.openai_api_key)
        self.model = config.openai_model
        self.temperature = config.openai_temperature

        logger.info("OpenAI provider initialized", extra={"default_model": self.model})

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        model_name = model or self.model
        temp = temperature if temperature is not None else self.temperature

        logger.debug(
            "Requesting chat completion",
            extra={"model": model_name, "messages": len(messages), "max_tokens": max_tokens},
        )

        response = self.client.chat.completions.create(
            model=model_name,
            messages=messages,  # type: ignore
            max_tokens=max_tokens,
            temperature=temp,
            **kwargs,
        )

        # A refusal or tool-only reply carries no text content.
        return response.choices[0].message.content or ""
