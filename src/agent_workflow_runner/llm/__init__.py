"""LLM package initialization."""

from agent_workflow_runner.llm.capability import LLMCapability
from agent_workflow_runner.llm.factory import LLMFactory
from agent_workflow_runner.llm.provider import LLMProvider

__all__ = [
    "LLMCapability",
    "LLMFactory",
    "LLMProvider",
]
