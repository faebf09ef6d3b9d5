"""Factory for the LLM-backed capability used by workflow runs."""

import logging

from agent_workflow_runner.core.config import LLMConfig
from agent_workflow_runner.llm.capability import DEFAULT_SYSTEM_PROMPT, LLMCapability
from agent_workflow_runner.llm.llama_provider import LLaMAProvider
from agent_workflow_runner.llm.openai_provider import OpenAIProvider
from agent_workflow_runner.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

_PROVIDERS: dict[str, type[LLMProvider]] = {
    "openai": OpenAIProvider,
    "llama": LLaMAProvider,
}


class LLMFactory:
    """Build providers and capabilities from ``LLMConfig``."""

    @staticmethod
    def create(config: LLMConfig) -> LLMProvider:
        """Create an LLM provider based on configuration.

        Raises:
            ValueError: If the provider is unsupported or misconfigured.
        """
        provider_cls = _PROVIDERS.get(config.provider)
        if provider_cls is None:
            raise ValueError(f"Unsupported LLM provider: {config.provider}")

        logger.info("Creating LLM provider", extra={"provider": config.provider})
        return provider_cls(config)

    @staticmethod
    def create_capability(
        config: LLMConfig, system_prompt: str = DEFAULT_SYSTEM_PROMPT
    ) -> LLMCapability:
        return LLMCapability(LLMFactory.create(config), system_prompt)

    @staticmethod
    def default_model(config: LLMConfig) -> str | None:
        """Model name to use for agents that do not configure one.

        A local LLaMA provider serves a single model file, so its file name
        stands in as the model identifier.
        """
        if config.provider == "openai":
            return config.openai_model
        if config.provider == "llama" and config.llama_model_path is not None:
            return config.llama_model_path.name
        return None
