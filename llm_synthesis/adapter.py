"""LLM adapters for dataset summary generation.

Provides a base interface and concrete adapters for OpenAI-compatible
APIs and a deterministic mock for testing.
"""

import os
from abc import ABC, abstractmethod
from typing import Optional


class BaseLLMAdapter(ABC):
    """Abstract base for all LLM adapters."""

    @abstractmethod
    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Send a prompt to the LLM and return the raw response text.

        Args:
            prompt: The user prompt.
            system_prompt: Optional system instructions sent ahead of it.

        Returns:
            Raw string response from the model (expected to be Markdown).
        """


class OpenAILLMAdapter(BaseLLMAdapter):
    """Adapter for OpenAI-compatible chat completion APIs.

    Non-streaming, with a low temperature suited to report writing.
    """

    def __init__(
        self,
        model: str = "gpt-4o-mini",
        max_tokens: int = 2048,
        temperature: float = 0.3,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        """Initialise the OpenAI adapter.

        Args:
            model: Model identifier.
            max_tokens: Maximum tokens in the completion.
            temperature: Sampling temperature.
            api_key: OpenAI API key. Falls back to OPENAI_API_KEY env var.
            base_url: Optional base URL for OpenAI-compatible endpoints.
            timeout_seconds: Client-side request timeout.
        """
        try:
            from openai import OpenAI  # type: ignore[import-untyped]
        except ImportError as exc:
            raise ImportError(
                "openai package is required for OpenAILLMAdapter. "
                "Install it with: pip install openai"
            ) from exc

        resolved_key = api_key or os.environ.get("OPENAI_API_KEY", "")
        client_kwargs: dict = {"api_key": resolved_key}
        if base_url:
            client_kwargs["base_url"] = base_url
        if timeout_seconds is not None:
            client_kwargs["timeout"] = timeout_seconds

        self._client = OpenAI(**client_kwargs)
        self._model = model
        self._max_tokens = max_tokens
        self._temperature = temperature

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Call the OpenAI chat completion API.

        Args:
            prompt: The user prompt.
            system_prompt: Optional system instructions.

        Returns:
            Raw string content from the model response.
        """
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        response = self._client.chat.completions.create(
            model=self._model,
            messages=messages,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
            stream=False,
        )
        return response.choices[0].message.content or ""


# ---------------------------------------------------------------------------
# Fixed mock response used for local testing.
# ---------------------------------------------------------------------------
MOCK_REPORT = """\
## Executive Summary
Mock report for testing purposes.

## Key Findings
- Finding A identified in test data
- Finding B identified in test data

## Next Steps & Recommendations
- Verify integration with the summary endpoint
"""


class MockLLMAdapter(BaseLLMAdapter):
    """Deterministic adapter that returns a fixed Markdown report.

    Used for local testing and CI pipelines where no LLM API
    is available.
    """

    def generate(self, prompt: str, system_prompt: Optional[str] = None) -> str:
        """Return a fixed report regardless of input.

        Args:
            prompt: Ignored - present only to satisfy the interface.
            system_prompt: Ignored.

        Returns:
            The fixed Markdown report.
        """
        return MOCK_REPORT
