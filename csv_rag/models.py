from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, Tuple


@dataclass(frozen=True)
class TextUnit:
    """
    A bounded-length piece of one CSV row, produced by chunking.

    ``id`` is "<row>-<chunk>"; ``source_row_ref`` is the index of the row
    in the uploaded table.
    """

    id: str
    source_row_ref: int
    content: str

    @property
    def length(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class EmbeddingVector:
    unit_id: str
    values: Tuple[float, ...]

    def __len__(self) -> int:
        return len(self.values)


@dataclass(frozen=True)
class SimilarityScore:
    candidate_id: str
    score: float


@dataclass
class EmbeddingBatch:
    """
    Vectors for one ``embed`` call, in input order.

    ``degraded_batches`` lists the indices of batches whose vectors are local
    fallbacks rather than synthesized from remote scores.
    """

    vectors: List[EmbeddingVector] = field(default_factory=list)
    degraded_batches: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.vectors)

    def __iter__(self) -> Iterator[EmbeddingVector]:
        return iter(self.vectors)

    def __getitem__(self, index: int) -> EmbeddingVector:
        return self.vectors[index]

    @property
    def degraded(self) -> bool:
        return bool(self.degraded_batches)


@dataclass(frozen=True)
class RetrievalContext:
    """Context strings handed to the answer generator, most relevant first."""

    entries: Tuple[str, ...] = ()
    unit_ids: Tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self.entries)

    def as_list(self) -> List[str]:
        return list(self.entries)


@dataclass
class Corpus:
    """
    Everything indexed for one upload: text units plus one vector per unit.

    Treated as read-only once ``build_index`` returns it.
    """

    units: Sequence[TextUnit]
    vectors: Sequence[EmbeddingVector]
    degraded: bool = False
    row_count: int = 0

    def __len__(self) -> int:
        return len(self.units)
