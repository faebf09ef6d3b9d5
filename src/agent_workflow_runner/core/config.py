"""Core configuration for the workflow runner."""

import logging
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from agent_workflow_runner.core.logging import LogFormat, configure_logging


class LLMConfig(BaseSettings):
    """Configuration for LLM providers."""

    provider: Literal["openai", "llama"] = Field(
        default="openai",
        description="LLM provider to use",
    )

    # OpenAI settings
    openai_api_key: str | None = Field(
        default=None,
        description="OpenAI API key",
    )
    openai_model: str = Field(
        default="gpt-4",
        description="OpenAI model used when an agent does not name one",
    )
    openai_temperature: float = Field(
        default=0.7,
        ge=0.0,
        le=2.0,
        description="Temperature for OpenAI model",
    )

    # LLaMA settings
    llama_model_path: Path | None = Field(
        default=None,
        description="Path to LLaMA model file",
    )
    llama_n_ctx: int = Field(
        default=4096,
        gt=0,
        description="Context window size for LLaMA",
    )
    llama_n_threads: int | None = Field(
        default=None,
        description="Number of threads for LLaMA (None = auto)",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_LLM_",
        env_file=".env",
        extra="ignore",
    )


class SchedulerConfig(BaseSettings):
    """Configuration for wave scheduling and task invocation."""

    max_parallel: int | None = Field(
        default=None,
        gt=0,
        description="Upper bound on concurrently running tasks in a wave (None = wave width)",
    )
    invocation_timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        description="Time allowed for a single capability invocation before it counts as failed",
    )
    retry_backoff_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Delay before each retry attempt",
    )
    default_model: str | None = Field(
        default=None,
        description="Model used for agents that do not configure one",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_SCHEDULER_",
        env_file=".env",
        extra="ignore",
    )


class RunnerConfig(BaseSettings):
    """Main configuration for the workflow runner."""

    log_level: str = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: LogFormat = Field(
        default="json",
        description="Log output format: json (structured) or text",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    llm: LLMConfig = Field(
        default_factory=LLMConfig,
        description="LLM configuration",
    )
    scheduler: SchedulerConfig = Field(
        default_factory=SchedulerConfig,
        description="Scheduler configuration",
    )

    model_config = SettingsConfigDict(
        env_prefix="WORKFLOW_",
        env_file=".env",
        extra="ignore",
    )

    def setup_logging(self) -> None:
        """Configure logging based on settings."""
        configure_logging(self.log_level, self.log_format)

        if self.debug:
            logging.getLogger("agent_workflow_runner").setLevel(logging.DEBUG)
