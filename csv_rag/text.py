"""
Text normalization and chunking for CSV rows.

Rows are flattened to one line of text, then split into units no longer than
``max_length`` characters. Sentence boundaries are preferred; a sentence that
alone overflows the limit is packed word by word.
"""

from __future__ import annotations

import re
from typing import Iterator, List

DEFAULT_MAX_LENGTH = 1000

# A sentence is a run of non-terminators plus any trailing terminators.
_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]*|[.!?]+")


def sanitize(text: str) -> str:
    """Swap double quotes for single quotes, flatten line breaks, trim."""
    return text.replace('"', "'").replace("\n", " ").replace("\r", " ").strip()


def split_sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_RE.findall(text) if s.strip()]


def _pack_words(sentence: str, max_length: int) -> Iterator[str]:
    """Greedy word packing; words longer than the limit are hard-split."""
    current = ""
    for word in sentence.split():
        while len(word) > max_length:
            if current:
                yield current
                current = ""
            yield word[:max_length]
            word = word[max_length:]
        if not word:
            continue
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_length:
            current = candidate
        else:
            yield current
            current = word
    if current:
        yield current


class TextChunks:
    """
    Lazy, restartable sequence of chunks for one text.

    Nothing is computed until iteration, and every iteration starts over, so
    the same object can be consumed more than once.
    """

    def __init__(self, text: str, max_length: int = DEFAULT_MAX_LENGTH) -> None:
        if max_length < 1:
            raise ValueError("max_length must be positive")
        self.text = text
        self.max_length = max_length

    def __iter__(self) -> Iterator[str]:
        return self._generate()

    def __repr__(self) -> str:
        return f"TextChunks(len(text)={len(self.text)}, max_length={self.max_length})"

    def _generate(self) -> Iterator[str]:
        text, limit = self.text, self.max_length
        if len(text) <= limit:
            yield text
            return

        current = ""
        for sentence in split_sentences(text):
            candidate = f"{current} {sentence}" if current else sentence
            if len(candidate) <= limit:
                current = candidate
                continue
            if current:
                yield current
                current = ""
            if len(sentence) <= limit:
                current = sentence
                continue
            # Oversized sentence: emit full word chunks, keep the tail open for packing.
            pieces = list(_pack_words(sentence, limit))
            yield from pieces[:-1]
            current = pieces[-1] if pieces else ""
        if current:
            yield current


def chunk_text(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> TextChunks:
    return TextChunks(text, max_length)
