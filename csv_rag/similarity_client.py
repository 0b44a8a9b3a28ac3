from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Sequence

import httpx

from csv_rag.config import RagSettings
from csv_rag.errors import ConfigurationError, TransientError
from csv_rag.result import Err, Ok, Result

logger = logging.getLogger(__name__)

PROBE_QUERY = "Test message for API validation"
PROBE_SENTENCES = (
    "Hello, this is a test message for the similarity API",
    "This is another test sentence for comparison",
    "CSV data analysis and processing",
)


def _parse_scores(data: Any, expected: int) -> List[float] | None:
    """Scores payload must be a flat list of numbers, one per sentence."""
    if not isinstance(data, list) or len(data) != expected:
        return None
    scores: List[float] = []
    for item in data:
        if isinstance(item, bool) or not isinstance(item, (int, float)):
            return None
        scores.append(float(item))
    return scores


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return response.reason_phrase


class SimilarityClient:
    """
    Thin sync wrapper around the Hugging Face sentence-similarity endpoint.

    ``similarity`` never raises for remote problems: it returns ``Ok(scores)``
    or ``Err(TransientError)``. A missing credential is a configuration error
    and is raised at construction time.
    """

    def __init__(
        self,
        api_key: str | None,
        url: str,
        timeout: float = 30.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError(
                "Missing HF_API_KEY or HF_TOKEN environment variable. "
                "Set it in .env or your environment for the similarity API."
            )
        self.url = url
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._owns_http = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    @classmethod
    def from_settings(cls, settings: RagSettings, http_client: httpx.Client | None = None) -> "SimilarityClient":
        return cls(
            api_key=settings.hf_api_key,
            url=settings.similarity_url,
            timeout=settings.remote_timeout,
            http_client=http_client,
        )

    def similarity(self, source_sentence: str, sentences: Sequence[str]) -> Result[List[float]]:
        payload = {"inputs": {"source_sentence": source_sentence, "sentences": list(sentences)}}
        try:
            response = self._http.post(self.url, json=payload, headers=self._headers)
        except httpx.TimeoutException as exc:
            logger.error("Similarity API timed out: %s", exc)
            return Err(TransientError(f"Similarity API timed out: {exc}"))
        except httpx.HTTPError as exc:
            logger.error("Similarity API request failed: %s", exc)
            return Err(TransientError(f"Similarity API request failed: {exc}"))

        if response.is_error:
            detail = _error_detail(response)
            logger.error("Similarity API error %s: %s", response.status_code, detail)
            return Err(
                TransientError(
                    f"Similarity API failed ({response.status_code}): {detail}",
                    status_code=response.status_code,
                )
            )

        try:
            data = response.json()
        except ValueError:
            return Err(TransientError("Similarity API returned a non-JSON body"))

        scores = _parse_scores(data, len(payload["inputs"]["sentences"]))
        if scores is None:
            logger.error("Similarity API returned a malformed payload: %r", data)
            return Err(TransientError("Similarity API returned a malformed payload"))
        return Ok(scores)

    def close(self) -> None:
        """Close the underlying connection pool unless it was passed in by the caller."""
        if self._owns_http:
            self._http.close()


@dataclass
class ServiceCheck:
    """Outcome of a connectivity probe against the similarity endpoint."""

    ok: bool
    detail: str
    endpoint: str
    status_code: int | None = None
    elapsed_ms: int | None = None
    scores: List[float] = field(default_factory=list)


def _classify(error: TransientError) -> str:
    code = error.status_code
    if code == 401:
        return "Invalid Hugging Face API key"
    if code == 403:
        return "Access denied: the API key cannot use this model"
    if code == 429:
        return "Rate limit exceeded, wait and try again"
    if code is None and "request failed" in str(error):
        return "Network connection error"
    if code is None and "timed out" in str(error):
        return "Request timed out"
    return str(error)


def check_similarity_service(settings: RagSettings, http_client: httpx.Client | None = None) -> ServiceCheck:
    """
    Probe the similarity endpoint with a fixed query and report what happened.

    Never raises; a missing credential is reported as a failed check.
    """
    try:
        client = SimilarityClient.from_settings(settings, http_client=http_client)
    except ConfigurationError as exc:
        return ServiceCheck(ok=False, detail=str(exc), endpoint=settings.similarity_url)

    started = time.perf_counter()
    try:
        result = client.similarity(PROBE_QUERY, PROBE_SENTENCES)
    finally:
        client.close()
    elapsed_ms = int((time.perf_counter() - started) * 1000)

    if isinstance(result, Ok):
        logger.info("Similarity API check succeeded in %sms", elapsed_ms)
        return ServiceCheck(
            ok=True,
            detail="Similarity API is working correctly",
            endpoint=client.url,
            status_code=200,
            elapsed_ms=elapsed_ms,
            scores=result.value,
        )
    return ServiceCheck(
        ok=False,
        detail=_classify(result.error),
        endpoint=client.url,
        status_code=result.error.status_code,
        elapsed_ms=elapsed_ms,
    )
