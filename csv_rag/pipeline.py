"""
End-to-end CSV RAG: index uploaded rows, then answer questions over them.

    corpus = build_index(["Paris is the capital of France.", ...])
    answer = query(corpus, "What is the capital of France?")

Retrieval scores the question directly against every unit's text with the
similarity service. If that yields nothing (service down), units are ranked by
cosine similarity between the stored vectors and a query vector instead.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, List, Sequence

import httpx

from csv_rag.config import RagSettings
from csv_rag.context import ContextAssembler
from csv_rag.embeddings import EmbeddingProvider
from csv_rag.generator import AnswerGenerator
from csv_rag.models import Corpus, RetrievalContext
from csv_rag.ranking import SimilarityRanker, cosine_scores
from csv_rag.similarity_client import SimilarityClient
from csv_rag.tables import Row, rows_to_units

logger = logging.getLogger(__name__)


@dataclass
class QueryResult:
    answer: str
    context: RetrievalContext


class CsvRagPipeline:
    """Wires chunking, embedding, ranking, context assembly and generation together."""

    def __init__(
        self,
        embedder: EmbeddingProvider,
        ranker: SimilarityRanker,
        generator: AnswerGenerator,
        assembler: ContextAssembler,
        chunk_max_length: int = 1000,
        similarity_client: SimilarityClient | None = None,
    ) -> None:
        self.embedder = embedder
        self.ranker = ranker
        self.generator = generator
        self.assembler = assembler
        self.chunk_max_length = chunk_max_length
        self._similarity_client = similarity_client

    @classmethod
    def from_settings(
        cls,
        settings: RagSettings | None = None,
        http_client: httpx.Client | None = None,
    ) -> "CsvRagPipeline":
        """Build a pipeline; raises ConfigurationError when no similarity credential is set."""
        settings = settings or RagSettings.from_env()
        client = SimilarityClient.from_settings(settings, http_client=http_client)
        return cls(
            embedder=EmbeddingProvider.from_settings(settings, client=client),
            ranker=SimilarityRanker(client),
            generator=AnswerGenerator.from_settings(settings),
            assembler=ContextAssembler(top_k=settings.top_k),
            chunk_max_length=settings.chunk_max_length,
            similarity_client=client,
        )

    def close(self) -> None:
        """Release the remote clients this pipeline opened."""
        if self._similarity_client is not None:
            self._similarity_client.close()
        self.generator.close()

    def __enter__(self) -> "CsvRagPipeline":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def build_index(self, rows: Sequence[Row]) -> Corpus:
        units = rows_to_units(rows, self.chunk_max_length)
        logger.info("Indexing %d rows as %d text units", len(rows), len(units))
        batch = self.embedder.embed([u.content for u in units], unit_ids=[u.id for u in units])
        if batch.degraded:
            logger.warning(
                "Embedding degraded for %d batch(es); fallback vectors were used",
                len(batch.degraded_batches),
            )
        return Corpus(units=tuple(units), vectors=tuple(batch), degraded=batch.degraded, row_count=len(rows))

    def retrieve(self, corpus: Corpus, question: str) -> RetrievalContext:
        if not corpus.units:
            return RetrievalContext()

        scores = self.ranker.score_candidates(
            question,
            [u.content for u in corpus.units],
            [u.id for u in corpus.units],
        )
        if not scores:
            logger.warning("Direct similarity scoring returned nothing; ranking by stored vectors")
            query_vector = self.embedder.embed_query(question)
            scores = cosine_scores(query_vector, corpus.vectors)
        return self.assembler.assemble(corpus.units, scores)

    def ask(self, corpus: Corpus, question: str) -> QueryResult:
        context = self.retrieve(corpus, question)
        answer = self.generator.answer(question, context.as_list())
        return QueryResult(answer=answer, context=context)

    def query(self, corpus: Corpus, question: str) -> str:
        return self.ask(corpus, question).answer


class CorpusRegistry:
    """
    One corpus per upload session. A newer build replaces the older one
    outright; corpora are never merged.
    """

    def __init__(self) -> None:
        self._corpora: Dict[str, Corpus] = {}

    def put(self, session_id: str, corpus: Corpus) -> None:
        self._corpora[session_id] = corpus

    def get(self, session_id: str) -> Corpus | None:
        return self._corpora.get(session_id)

    def drop(self, session_id: str) -> None:
        self._corpora.pop(session_id, None)

    def sessions(self) -> List[str]:
        return list(self._corpora)


_pipeline_instance: CsvRagPipeline | None = None


def get_pipeline() -> CsvRagPipeline:
    """Singleton-style accessor for the default pipeline built from the environment."""
    global _pipeline_instance

    if _pipeline_instance is None:
        _pipeline_instance = CsvRagPipeline.from_settings()
    return _pipeline_instance


def build_index(rows: Sequence[Row]) -> Corpus:
    return get_pipeline().build_index(rows)


def query(corpus: Corpus, question: str) -> str:
    return get_pipeline().query(corpus, question)
