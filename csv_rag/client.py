from __future__ import annotations

import logging
from typing import Any

from groq import APIError, Groq

from csv_rag.config import DEFAULT_COMPLETION_MODEL, RagSettings
from csv_rag.errors import ConfigurationError, TransientError
from csv_rag.result import Err, Ok, Result

logger = logging.getLogger(__name__)


class LLMClient:
    """
    Thin sync wrapper around the chat-completion provider.

    This implementation uses Groq's API via the `groq` Python client.
    Provider errors come back as ``Err(TransientError)``; only a missing
    API key raises.
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = DEFAULT_COMPLETION_MODEL,
        timeout: float = 30.0,
        groq_client: Any = None,
    ) -> None:
        if not api_key and groq_client is None:
            raise ConfigurationError(
                "Missing GROQ_API_KEY environment variable. "
                "Set it in .env or your environment for the Groq API."
            )
        self.model = model
        self._owns_client = groq_client is None
        self._client = groq_client or Groq(api_key=api_key, timeout=timeout)

    @classmethod
    def from_settings(cls, settings: RagSettings) -> "LLMClient":
        return cls(
            api_key=settings.groq_api_key,
            model=settings.completion_model,
            timeout=settings.remote_timeout,
        )

    def complete(self, system_prompt: str, user_prompt: str, **kwargs: Any) -> Result[str]:
        """
        Single chat completion; returns the assistant's message content.
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        params: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "n": 1,
        }
        if "temperature" in kwargs and kwargs["temperature"] is not None:
            params["temperature"] = kwargs.pop("temperature")
        params.update(kwargs)

        try:
            response = self._client.chat.completions.create(**params)
        except APIError as exc:
            logger.error("Error generating response with Groq: %s", exc)
            return Err(TransientError(str(exc), status_code=getattr(exc, "status_code", None)))

        if not response.choices:
            return Ok("")
        return Ok((response.choices[0].message.content or "").strip())

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
