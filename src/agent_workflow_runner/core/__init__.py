"""Core package initialization."""

from agent_workflow_runner.core.config import LLMConfig, RunnerConfig, SchedulerConfig
from agent_workflow_runner.core.logging import configure_logging

__all__ = [
    "LLMConfig",
    "RunnerConfig",
    "SchedulerConfig",
    "configure_logging",
]
