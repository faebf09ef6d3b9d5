"""Abstract base class for LLM providers."""

from abc import ABC, abstractmethod
from typing import Any


class LLMProvider(ABC):
    """Chat backend behind ``LLMCapability``.

    One provider instance serves every agent of a run, possibly from several
    wave threads at once, so ``chat`` must not keep per-call state on the
    instance.
    """

    @abstractmethod
    def chat(
        self,
        messages: list[dict[str, str]],
        model: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
        **kwargs: Any,
    ) -> str:
        """Return the assistant reply for ``messages``.

        Args:
            messages: Chat messages with 'role' and 'content'.
            model: Agent model identifier; None selects the provider default.
            max_tokens: Agent token limit, if any.
            temperature: Agent sampling temperature, if any.
            **kwargs: Provider-specific parameters.
        """
