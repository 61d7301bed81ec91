"""
infrastructure.rag.faiss_index - VectorIndexPort over a local FAISS store.

The store lives in one folder (index.faiss + index.pkl) and is rewritten
after every add/delete, so a killed load leaves every finished batch on
disk for the resume path. Tag filtering, counting and deletion walk the
in-memory docstore.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Iterator, Optional

from langchain_community.vectorstores import FAISS
from langchain_community.vectorstores.faiss import DistanceStrategy
from langchain_core.documents import Document as LCDocument
from langchain_core.embeddings import Embeddings

from domain.models import Document

logger = logging.getLogger(__name__)


def _matches(metadata: dict[str, Any], filter: dict[str, Any]) -> bool:
    return all(metadata.get(key) == value for key, value in filter.items())


class FaissVectorIndex:
    """Implements VectorIndexPort.

    The Embeddings object is only needed by FAISS for (de)serialization;
    vectors are always passed in precomputed.
    """

    def __init__(self, folder: Path, embeddings: Embeddings):
        self._folder = Path(folder)
        self._embeddings = embeddings
        self._store: Optional[FAISS] = None
        self._lock = asyncio.Lock()
        self._load()

    # ================================================================
    # Vectorstore management
    # ================================================================

    def _exists_on_disk(self) -> bool:
        return (self._folder / "index.faiss").exists()

    def _load(self) -> None:
        if not self._exists_on_disk():
            logger.info("No FAISS index at %s yet", self._folder)
            return
        self._store = FAISS.load_local(
            folder_path=str(self._folder),
            embeddings=self._embeddings,
            allow_dangerous_deserialization=True,
        )
        logger.info("FAISS index loaded from %s (%d vectors)", self._folder, self._store.index.ntotal)

    def _save(self) -> None:
        self._folder.mkdir(parents=True, exist_ok=True)
        self._store.save_local(str(self._folder))

    def _iter_matching_ids(self, filter: dict[str, Any]) -> Iterator[str]:
        if self._store is None:
            return
        for doc_id in self._store.index_to_docstore_id.values():
            doc = self._store.docstore.search(doc_id)
            if isinstance(doc, LCDocument) and _matches(doc.metadata, filter):
                yield doc_id

    # ================================================================
    # VectorIndexPort
    # ================================================================

    async def add(self, documents: list[Document], vectors: list[list[float]]) -> None:
        if len(documents) != len(vectors):
            raise ValueError(f"Got {len(documents)} documents but {len(vectors)} vectors")
        if not documents:
            return
        pairs = [(d.content, v) for d, v in zip(documents, vectors)]
        metadatas = [dict(d.metadata) for d in documents]

        async with self._lock:
            def _add() -> None:
                if self._store is None:
                    self._store = FAISS.from_embeddings(
                        text_embeddings=pairs,
                        embedding=self._embeddings,
                        metadatas=metadatas,
                        distance_strategy=DistanceStrategy.COSINE,
                    )
                else:
                    self._store.add_embeddings(text_embeddings=pairs, metadatas=metadatas)
                self._save()

            await asyncio.to_thread(_add)

    async def search(self, vector: list[float], filter: dict[str, Any], k: int) -> list[Document]:
        if self._store is None:
            return []
        store = self._store
        # The filter is applied after the vector search, so look at every
        # vector to never miss matches hidden behind other datasets.
        fetch_k = max(k, store.index.ntotal)
        results = await asyncio.to_thread(
            store.similarity_search_with_score_by_vector,
            vector,
            k=k,
            filter=filter,
            fetch_k=fetch_k,
        )
        return [Document(content=doc.page_content, metadata=dict(doc.metadata)) for doc, _ in results]

    async def count(self, filter: dict[str, Any]) -> int:
        return sum(1 for _ in self._iter_matching_ids(filter))

    async def exists(self, filter: dict[str, Any]) -> bool:
        return next(self._iter_matching_ids(filter), None) is not None

    async def delete(self, filter: dict[str, Any]) -> int:
        async with self._lock:
            ids = list(self._iter_matching_ids(filter))
            if not ids:
                return 0
            self._store.delete(ids=ids)
            await asyncio.to_thread(self._save)
            return len(ids)
