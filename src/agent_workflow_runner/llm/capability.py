"""Capability collaborator backed by an LLM provider.

The workflow core only knows the capability contract
``capability(model, prompt, context, *, temperature=None, max_tokens=None) -> str``.
This adapter fulfils it with whichever ``LLMProvider`` the configuration selects.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from agent_workflow_runner.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are one agent in a multi-agent workflow. Complete the task you are given. "
    "When the result has structure, answer with a single JSON object."
)


class LLMCapability:
    """Invoke a chat model for one task."""

    def __init__(self, provider: LLMProvider, system_prompt: str = DEFAULT_SYSTEM_PROMPT) -> None:
        self.provider = provider
        self.system_prompt = system_prompt

    def build_messages(self, prompt: str, context: dict[str, Any]) -> list[dict[str, str]]:
        system = self.system_prompt
        if context:
            system += "\n\nContext:\n" + json.dumps(context, indent=2, default=str)
        return [
            {"role": "system", "content": system},
            {"role": "user", "content": prompt},
        ]

    def __call__(
        self,
        model: str,
        prompt: str,
        context: dict[str, Any],
        *,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        logger.debug("Invoking capability", extra={"model": model})
        return self.provider.chat(
            self.build_messages(prompt, context),
            model=model,
            max_tokens=max_tokens,
            temperature=temperature,
        )
