"""Groq-backed LLM client."""

from typing import Any

from groq import APIError, AsyncGroq

from .base import LLMError

DEFAULT_MODEL = "llama-3.1-70b-versatile"


class GroqLLMClient:
    """Chat completions through an ``AsyncGroq`` client.

    Example:
        llm = GroqLLMClient(AsyncGroq(api_key="..."))
        action = await llm.complete(intent_prompt, history=recent_turns)
    """

    def __init__(self, client: AsyncGroq, model: str = DEFAULT_MODEL) -> None:
        self._client = client
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        prompt: str,
        system: str | None = None,
        history: list[dict[str, str]] | None = None,
    ) -> str:
        """Send one prompt and return the reply text.

        Args:
            prompt: Sent as the final user turn.
            system: Optional system instruction, sent first.
            history: Earlier turns as ``{"role", "content"}`` dicts, oldest first.

        Raises:
            LLMError: If Groq rejects the request or the reply is blank.
        """
        messages: list[dict[str, Any]] = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.extend(history or [])
        messages.append({"role": "user", "content": prompt})

        try:
            response = await self._client.chat.completions.create(model=self._model, messages=messages)
        except APIError as e:
            raise LLMError(f"Groq request failed: {e}") from e

        content = response.choices[0].message.content if response.choices else None
        if not content or not content.strip():
            raise LLMError("Empty response from model")
        return content
