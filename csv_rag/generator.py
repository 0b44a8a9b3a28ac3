from __future__ import annotations

import logging
from typing import Sequence

from csv_rag.client import LLMClient
from csv_rag.config import RagSettings
from csv_rag.errors import ConfigurationError, TransientError
from csv_rag.prompts import (
    CSV_ANSWER_SYSTEM_PROMPT,
    build_answer_user_prompt,
    build_fallback_answer,
)
from csv_rag.result import Err, recover

logger = logging.getLogger(__name__)

ANSWER_TEMPERATURE = 0.3
ANSWER_MAX_TOKENS = 1000


class AnswerGenerator:
    """
    Produces the final answer from a ranked context.

    Without a completion client (no GROQ_API_KEY) or when the call fails,
    returns a deterministic fallback message that echoes the question. A
    model reply is used whole or not at all.
    """

    def __init__(self, client: LLMClient | None) -> None:
        self._client = client

    @classmethod
    def from_settings(cls, settings: RagSettings) -> "AnswerGenerator":
        try:
            client = LLMClient.from_settings(settings)
        except ConfigurationError:
            logger.warning("GROQ_API_KEY not found, answers will use the fallback response")
            client = None
        return cls(client)

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    def answer(self, query: str, context: Sequence[str]) -> str:
        context = list(context)

        def fallback(error: TransientError) -> str:
            logger.warning("Answer service unavailable (%s), using fallback response", error)
            return build_fallback_answer(query, context)

        if self._client is None:
            return fallback(TransientError("no completion client configured"))

        try:
            result = self._client.complete(
                system_prompt=CSV_ANSWER_SYSTEM_PROMPT.strip(),
                user_prompt=build_answer_user_prompt(query, context),
                temperature=ANSWER_TEMPERATURE,
                max_tokens=ANSWER_MAX_TOKENS,
            )
        except Exception as exc:
            logger.exception("Unexpected error from the completion client")
            result = Err(TransientError(str(exc) or repr(exc)))

        text = recover(result, fallback)
        if not text.strip():
            return fallback(TransientError("empty completion"))
        return text
