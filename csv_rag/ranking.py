from __future__ import annotations

import logging
import math
from typing import List, Sequence

import numpy as np

from csv_rag.errors import TransientError
from csv_rag.filters import is_valid_text
from csv_rag.models import EmbeddingVector, SimilarityScore
from csv_rag.result import recover
from csv_rag.similarity_client import SimilarityClient

logger = logging.getLogger(__name__)


def _no_scores(error: TransientError) -> List[float]:
    logger.error("Error generating similarity scores: %s", error)
    return []


class SimilarityRanker:
    """
    Scores a query against candidate texts with one call to the similarity service.

    Invalid candidates are dropped before the call. When nothing valid is left,
    or the service fails, the result is an empty list; this never raises for
    remote problems.
    """

    def __init__(self, client: SimilarityClient) -> None:
        self._client = client

    def score(self, query: str, candidates: Sequence[str]) -> List[float]:
        valid = [c for c in candidates if is_valid_text(c)]
        if not valid:
            return []
        return recover(self._client.similarity(query, valid), _no_scores)

    def score_candidates(
        self,
        query: str,
        candidates: Sequence[str],
        candidate_ids: Sequence[str],
    ) -> List[SimilarityScore]:
        """Like ``score`` but keeps each score attached to its candidate id."""
        kept_ids = [cid for cid, text in zip(candidate_ids, candidates) if is_valid_text(text)]
        scores = self.score(query, candidates)
        if len(scores) != len(kept_ids):
            return []
        return [SimilarityScore(cid, s) for cid, s in zip(kept_ids, scores)]


def cosine_scores(query: EmbeddingVector, vectors: Sequence[EmbeddingVector]) -> List[SimilarityScore]:
    """Cosine similarity of ``query`` against each stored vector, in input order."""
    q_vec = np.array(query.values, dtype="float32")
    q_norm = np.linalg.norm(q_vec) or 1.0

    scored: List[SimilarityScore] = []
    for vector in vectors:
        c_vec = np.array(vector.values, dtype="float32")
        c_norm = np.linalg.norm(c_vec) or 1.0
        score = float(np.dot(q_vec, c_vec) / (q_norm * c_norm))
        if not math.isnan(score):
            scored.append(SimilarityScore(vector.unit_id, score))
    return scored
