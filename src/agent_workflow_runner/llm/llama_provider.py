"""Local LLaMA LLM provider implementation."""

import logging
import threading
from typing import Any

from agent_workflow_runner.core.config import LLMConfig
from agent_workflow_runner.llm.provider import LLMProvider

logger = logging.getLogger(__name__)

DEFAULT_MAX_TOKENS = 512


class LLaMAProvider(LLMProvider):
    """Local LLaMA model provider.

    Requires the ``llama`` extra (llama-cpp-python). One model file is loaded,
    so every agent runs on it whatever model identifier it names. The model is
    not safe for concurrent use; calls from parallel wave tasks are serialized.
    """

    def __init__(self, config: LLMConfig) -> None:
        """
        Raises:
            ValueError: If model path is not provided.
            ImportError: If llama-cpp-python is not installed.
        """
        if not config.llama_model_path:
            raise ValueError("LLaMA model path is required (set WORKFLOW_LLM_LLAMA_MODEL_PATH)")

        try:
            from llama_cpp import Llama
        except ImportError as e:
            raise ImportError(
                "llama-cpp-python is required for LLaMA provider. "
                "Install it with: pip install agent-workflow-runner[llama]"
            ) from e

        self.config = config
        self._lock = threading.Lock()

        logger.info("Loading LLaMA model", extra={"path": str(config.llama_model_path)})
        self.llm = Llama(
            model_path=str(config.llama_model_path),
            n_ctx=config.llama_n_ctx,
            n_threads=config.llama_n_threads,
            verbose=False,
        )

    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        with self._lock:
            result = self.llm.create_chat_completion(
                messages=messages,
                max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
                temperature=temperature if temperature is not None else 0.7,
                **kwargs,
            )

        content = result["choices"][0]["message"]["content"] or ""
        logger.debug("LLaMA reply", extra={"requested_model": model, "chars": len(content)})
        return content
