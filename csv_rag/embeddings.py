"""
Embedding provider built on top of a sentence-similarity endpoint.

The endpoint returns one relevance score per sentence, not a vector, so each
vector here is synthesized from that score, the text length and a little
jitter. Treat the result as a rank-preserving surrogate for the texts of one
upload: comparing vectors across unrelated corpora is not meaningful.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, List, Sequence, Tuple

import numpy as np

from csv_rag.config import EMBEDDING_DIM, RagSettings
from csv_rag.errors import TransientError
from csv_rag.filters import is_valid_text
from csv_rag.models import EmbeddingBatch, EmbeddingVector
from csv_rag.result import Err, Ok, recover
from csv_rag.similarity_client import SimilarityClient

logger = logging.getLogger(__name__)

REFERENCE_SENTENCE = "This is a data sample from a CSV file containing information."

# Vector synthesis: score * SCORE_SCALE + sin(j * len * LENGTH_FREQ) * SINE_AMPLITUDE + jitter.
SCORE_SCALE = 0.5
LENGTH_FREQ = 0.01
SINE_AMPLITUDE = 0.1
JITTER_AMPLITUDE = 0.05
FALLBACK_SCALE = 0.1


class EmbeddingProvider:
    """
    Turns texts into fixed-size vectors, one remote call per batch.

    A failed batch is replaced with small random vectors for exactly that
    batch; the rest of the call carries on. Output length always equals input
    length.
    """

    def __init__(
        self,
        client: SimilarityClient,
        batch_size: int = 10,
        batch_delay: float = 0.2,
        dim: int = EMBEDDING_DIM,
        seed: int | None = 0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._client = client
        self.batch_size = batch_size
        self.batch_delay = batch_delay
        self.dim = dim
        self._rng = np.random.default_rng(seed)
        self._sleep = sleep
        self._positions = np.arange(dim, dtype="float64")

    @classmethod
    def from_settings(cls, settings: RagSettings, client: SimilarityClient | None = None) -> "EmbeddingProvider":
        return cls(
            client=client or SimilarityClient.from_settings(settings),
            batch_size=settings.batch_size,
            batch_delay=settings.batch_delay,
            dim=settings.embedding_dim,
            seed=settings.embedding_seed,
        )

    def embed(self, texts: Sequence[str], unit_ids: Sequence[str] | None = None) -> EmbeddingBatch:
        texts = list(texts)
        ids = [str(i) for i in range(len(texts))] if unit_ids is None else [str(u) for u in unit_ids]
        if len(ids) != len(texts):
            raise ValueError("unit_ids must match texts one-to-one")
        if not texts:
            return EmbeddingBatch()

        send_mask = [is_valid_text(t) for t in texts]
        invalid = [t for t, ok in zip(texts, send_mask) if not ok]
        if invalid:
            logger.warning("Filtered out %d invalid texts. Examples: %r", len(invalid), invalid[:3])
        if not any(send_mask):
            logger.warning("No valid texts left after filtering; embedding the original texts instead.")
            send_mask = [True] * len(texts)

        vectors: List[EmbeddingVector | None] = [None] * len(texts)
        degraded: List[int] = []
        for batch_no, start in enumerate(range(0, len(texts), self.batch_size)):
            positions = range(start, min(start + self.batch_size, len(texts)))
            to_send = [i for i in positions if send_mask[i]]

            for i in positions:
                if not send_mask[i]:
                    vectors[i] = EmbeddingVector(ids[i], self._fallback_values())

            # Throttle only after a remote call.
            if not to_send:
                continue

            rows, ok = self._embed_batch([texts[i] for i in to_send], batch_no)
            for i, values in zip(to_send, rows):
                vectors[i] = EmbeddingVector(ids[i], values)
            if not ok:
                degraded.append(batch_no)

            self._sleep(self.batch_delay)

        logger.info("Total embeddings generated: %d", len(vectors))
        return EmbeddingBatch(vectors=vectors, degraded_batches=degraded)

    def embed_query(self, text: str) -> EmbeddingVector:
        try:
            return self.embed([text], unit_ids=["query"])[0]
        except Exception:
            logger.exception("Error generating query embedding; using fallback vector")
            return EmbeddingVector("query", self._fallback_values())

    def _embed_batch(self, batch: List[str], batch_no: int) -> Tuple[List[Tuple[float, ...]], bool]:
        def on_failure(error: TransientError) -> Tuple[List[Tuple[float, ...]], bool]:
            logger.error("Error in embedding batch %d: %s", batch_no + 1, error)
            return [self._fallback_values() for _ in batch], False

        result = self._client.similarity(REFERENCE_SENTENCE, batch)
        if isinstance(result, Ok) and len(result.value) != len(batch):
            result = Err(TransientError(f"expected {len(batch)} scores, got {len(result.value)}"))
        rows, ok = recover(result.map(lambda scores: (self._synthesize(scores, batch), True)), on_failure)
        if ok:
            logger.info("Generated embeddings for batch %d", batch_no + 1)
        return rows, ok

    def _synthesize(self, scores: Sequence[float], batch: Sequence[str]) -> List[Tuple[float, ...]]:
        rows = []
        for score, text in zip(scores, batch):
            sine = np.sin(self._positions * len(text) * LENGTH_FREQ) * SINE_AMPLITUDE
            jitter = (self._rng.random(self.dim) - 0.5) * JITTER_AMPLITUDE
            rows.append(tuple(float(v) for v in score * SCORE_SCALE + sine + jitter))
        return rows

    def _fallback_values(self) -> Tuple[float, ...]:
        return tuple(float(v) for v in self._rng.random(self.dim) * FALLBACK_SCALE)
