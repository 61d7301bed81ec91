"""
application.services.corpus_loader - One-time, resumable corpus indexing.

ensure_indexed() is the startup path: if any document already carries the
dataset tag the corpus counts as loaded and nothing happens. Otherwise every
source row is tagged, embedded and upserted in fixed-size batches with a
mandatory pause between batches.

resume() is the recovery path after a partial load: the number of tagged
documents already in the index is taken as the offset into the source rows
and only the remainder is embedded, in row order.

Any batch failure aborts the run with CorpusLoadError; there is no
partial-batch retry.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable

from domain.exceptions import CorpusLoadError
from domain.models import DATASET_TAG_KEY, Document
from domain.ports import CorpusSourcePort, EmbedderPort, VectorIndexPort
from application.dto import LoadReport

logger = logging.getLogger(__name__)

# Cohere-style embedding endpoints reject more than 96 texts per request.
MAX_BATCH_SIZE = 96
DEFAULT_BATCH_SIZE = 90
DEFAULT_BATCH_DELAY_SECONDS = 3.0


class CorpusLoader:

    def __init__(
        self,
        source: CorpusSourcePort,
        embedder: EmbedderPort,
        index: VectorIndexPort,
        dataset_tag: str,
        batch_size: int = DEFAULT_BATCH_SIZE,
        delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if not 1 <= batch_size <= MAX_BATCH_SIZE:
            raise ValueError(f"batch_size must be between 1 and {MAX_BATCH_SIZE}, got {batch_size}")
        self._source = source
        self._embedder = embedder
        self._index = index
        self._dataset_tag = dataset_tag
        self._batch_size = batch_size
        self._delay = delay_seconds
        self._sleep = sleep

    @property
    def dataset_tag(self) -> str:
        return self._dataset_tag

    @property
    def _tag_filter(self) -> dict[str, str]:
        return {DATASET_TAG_KEY: self._dataset_tag}

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    async def ensure_indexed(self) -> LoadReport:
        logger.info("Checking if dataset '%s' is already indexed...", self._dataset_tag)
        if await self._index.exists(self._tag_filter):
            logger.info("Dataset '%s' found in index. Skipping indexing.", self._dataset_tag)
            return LoadReport(dataset_tag=self._dataset_tag, skipped=True)

        logger.info("Dataset '%s' not found. Starting indexing process...", self._dataset_tag)
        docs = await self._load_tagged()
        embedded, batches = await self._index_from(docs, start_offset=0)
        logger.info("Successfully indexed %d documents for '%s'.", embedded, self._dataset_tag)
        return LoadReport(
            dataset_tag=self._dataset_tag,
            skipped=False,
            embedded=embedded,
            batches=batches,
            total_rows=len(docs),
        )

    async def resume(self) -> LoadReport:
        already = await self._index.count(self._tag_filter)
        logger.info("Already embedded: %d documents for '%s'", already, self._dataset_tag)

        docs = await self._load_tagged()
        if already >= len(docs):
            logger.info("All documents are already embedded!")
            return LoadReport(
                dataset_tag=self._dataset_tag,
                skipped=True,
                start_offset=already,
                total_rows=len(docs),
            )

        logger.info(
            "Resuming from document %d. Embedding %d remaining documents...",
            already + 1, len(docs) - already,
        )
        embedded, batches = await self._index_from(docs, start_offset=already)

        final = await self._index.count(self._tag_filter)
        logger.info("Final count in index: %d documents", final)
        return LoadReport(
            dataset_tag=self._dataset_tag,
            skipped=False,
            start_offset=already,
            embedded=embedded,
            batches=batches,
            total_rows=len(docs),
        )

    async def purge(self) -> int:
        logger.info("Deleting dataset '%s' from the index...", self._dataset_tag)
        deleted = await self._index.delete(self._tag_filter)
        logger.info("Deleted %d documents tagged '%s'.", deleted, self._dataset_tag)
        return deleted

    async def count(self) -> int:
        return await self._index.count(self._tag_filter)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _load_tagged(self) -> list[Document]:
        try:
            docs = await asyncio.to_thread(self._source.load)
        except Exception as exc:
            raise CorpusLoadError(f"Could not read corpus source: {exc}") from exc
        logger.info("Loaded %d rows from corpus source.", len(docs))
        return [doc.tagged(self._dataset_tag) for doc in docs]

    async def _index_from(self, docs: list[Document], start_offset: int) -> tuple[int, int]:
        """Embed and upsert docs[start_offset:] batch by batch.

        Returns (documents embedded, batches run).
        """
        remaining = docs[start_offset:]
        total_batches = -(-len(remaining) // self._batch_size)
        logger.info(
            "Adding %d documents in batches of %d...", len(remaining), self._batch_size,
        )

        embedded = 0
        for batch_no, i in enumerate(range(0, len(remaining), self._batch_size), start=1):
            batch = remaining[i:i + self._batch_size]
            first = start_offset + i + 1
            last = start_offset + i + len(batch)
            logger.info(
                "...Processing batch %d / %d (docs %d-%d)", batch_no, total_batches, first, last,
            )
            try:
                vectors = await self._embedder.embed_batch([d.content for d in batch])
                await self._index.add(batch, vectors)
            except Exception as exc:
                raise CorpusLoadError(
                    f"Batch {batch_no} (docs {first}-{last}) failed: {exc}",
                    batch_number=batch_no,
                    start_offset=start_offset + i,
                ) from exc
            embedded += len(batch)

            if batch_no < total_batches:
                await self._sleep(self._delay)

        return embedded, total_batches
