"""Embedding generation utilities."""

from __future__ import annotations

import asyncio
import logging
from typing import Iterable, List

from openai import APIError, AsyncOpenAI

from eventnet.core.config import settings

logger = logging.getLogger(__name__)


class EmbeddingGenerator:
    """Wrapper around the OpenAI embedding API with a deterministic offline fallback.

    ``embed`` honours the capability contract used across the core: a vector on success,
    an empty list on any failure.
    """

    def __init__(self, *, client: AsyncOpenAI | None = None, fallback_dimensions: int | None = None) -> None:
        self.model = settings.EMBEDDING_MODEL
        self.batch_size = 16
        self.max_retries = 3
        self._fallback_dimensions = max(8, fallback_dimensions or int(settings.PINECONE_DIMENSION))

        if client is not None:
            self.client: AsyncOpenAI | None = client
        elif settings.OPENAI_API_KEY:
            self.client = AsyncOpenAI(api_key=settings.OPENAI_API_KEY)
        else:
            logger.warning("OPENAI_API_KEY not configured; falling back to deterministic local embeddings.")
            self.client = None

    async def embed(self, text: str) -> List[float]:
        if not text or not text.strip():
            logger.info("No text to embed")
            return []
        try:
            vectors = await self.generate([text])
        except Exception as exc:
            logger.error("Embedding generation failed: %s", exc)
            return []
        return vectors[0] if vectors else []

    async def generate(self, chunks: Iterable[str]) -> List[List[float]]:
        chunk_list = list(chunks)
        if not chunk_list:
            return []

        if self.client is None:
            return [self._offline_embedding(text) for text in chunk_list]

        embeddings: List[List[float]] = []
        for i in range(0, len(chunk_list), self.batch_size):
            batch = chunk_list[i : i + self.batch_size]
            embeddings.extend(await self._embed_batch(batch))
        return embeddings

    async def _embed_batch(self, batch: List[str]) -> List[List[float]]:
        for attempt in range(1, self.max_retries + 1):
            try:
                response = await self.client.embeddings.create(model=self.model, input=batch)
                return [item.embedding for item in response.data]
            except APIError as exc:
                logger.warning("Embedding request failed (attempt %s/%s): %s", attempt, self.max_retries, exc)
                if attempt == self.max_retries:
                    raise
                await asyncio.sleep(2**attempt)
        return []

    def _offline_embedding(self, text: str) -> List[float]:
        """Produce a deterministic, bounded embedding vector without external APIs."""

        tokens = text.lower().split()
        if not tokens:
            return []

        vector = [0.0] * self._fallback_dimensions
        for token in tokens:
            bucket = sum(ord(char) for char in token) % self._fallback_dimensions
            vector[bucket] += 1.0

        norm = sum(component * component for component in vector) ** 0.5 or 1.0
        return [component / norm for component in vector]


embedding_generator = EmbeddingGenerator()
