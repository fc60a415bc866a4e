"""Text chunking for event documents."""

from __future__ import annotations

import re
from typing import Iterable, List

from eventnet.utils.text import clean_text_for_embedding


class TextChunker:
    """Sentence-aware chunking with character overlap between neighbouring chunks."""

    sentence_pattern = re.compile(r"(?<=[.!?])\s+")

    def chunk(self, text: str, *, chunk_size: int, overlap: int) -> List[str]:
        sentences: List[str] = []
        for raw in self.sentence_pattern.split(text.strip()):
            sentence = clean_text_for_embedding(raw)
            if sentence:
                sentences.extend(self._split_long(sentence, chunk_size))
        if not sentences:
            return []

        chunks: List[str] = []
        current: List[str] = []
        current_length = 0

        for sentence in sentences:
            if current_length + len(sentence) <= chunk_size or not current:
                current.append(sentence)
                current_length += len(sentence) + 1
                continue

            chunks.append(" ".join(current))
            current = self._tail(current, overlap) + [sentence]
            current_length = sum(len(s) for s in current) + len(current) - 1

        if current:
            chunks.append(" ".join(current))

        return chunks

    @staticmethod
    def _split_long(sentence: str, chunk_size: int) -> List[str]:
        if len(sentence) <= chunk_size:
            return [sentence]
        return [sentence[i : i + chunk_size] for i in range(0, len(sentence), chunk_size)]

    @staticmethod
    def _tail(sentences: Iterable[str], overlap: int) -> List[str]:
        if overlap <= 0:
            return []
        collected: List[str] = []
        total = 0
        for sentence in reversed(list(sentences)):
            total += len(sentence)
            collected.append(sentence)
            if total >= overlap:
                break
        return list(reversed(collected))
