from __future__ import annotations

from typing import Dict, Sequence

from csv_rag.models import RetrievalContext, SimilarityScore, TextUnit


class ContextAssembler:
    """
    Picks the top-K units by score and lays their content out most-relevant first.

    Ties keep the original chunk order. Units without a score are never selected.
    """

    def __init__(self, top_k: int = 5) -> None:
        if top_k < 1:
            raise ValueError("top_k must be at least 1")
        self.top_k = top_k

    def assemble(self, units: Sequence[TextUnit], scores: Sequence[SimilarityScore]) -> RetrievalContext:
        by_id: Dict[str, float] = {s.candidate_id: s.score for s in scores}
        ranked = [
            (position, unit, by_id[unit.id])
            for position, unit in enumerate(units)
            if unit.id in by_id
        ]
        ranked.sort(key=lambda item: (-item[2], item[0]))
        chosen = ranked[: self.top_k]
        return RetrievalContext(
            entries=tuple(unit.content for _, unit, _ in chosen),
            unit_ids=tuple(unit.id for _, unit, _ in chosen),
        )
