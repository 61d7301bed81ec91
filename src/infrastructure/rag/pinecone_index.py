"""
infrastructure.rag.pinecone_index - VectorIndexPort over a Pinecone index.

Vector ids are "<dataset_tag>#<row:07d>", which makes counting, existence
checks and purging a prefix listing instead of a metadata scan. The page
content travels in the "text" metadata field.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from pinecone import Pinecone

from domain.models import DATASET_TAG_KEY, Document

logger = logging.getLogger(__name__)

TEXT_KEY = "text"
DELETE_BATCH = 1000


def get_pinecone_index(*, api_key: str, host: str = "", index_name: str = ""):
    pc = Pinecone(api_key=api_key)
    if host:
        return pc.Index(host=host)
    return pc.Index(index_name)


def vector_id(dataset_tag: str, row: int) -> str:
    return f"{dataset_tag}#{int(row):07d}"


def _tag_of(filter: dict[str, Any]) -> str:
    tag = filter.get(DATASET_TAG_KEY)
    if not tag or set(filter) != {DATASET_TAG_KEY}:
        raise ValueError(f"Pinecone index only supports filtering on '{DATASET_TAG_KEY}'")
    return tag


class PineconeVectorIndex:
    """Implements VectorIndexPort. Blocking client calls run in a worker thread."""

    def __init__(self, index, namespace: str = "recipes"):
        self._index = index
        self._namespace = namespace

    def _ids_with_prefix(self, prefix: str, limit: int | None = None) -> list[str]:
        ids: list[str] = []
        kwargs: dict[str, Any] = {"prefix": prefix, "namespace": self._namespace}
        if limit is not None:
            kwargs["limit"] = limit
        # Pages are plain id lists on older clients and ListResponse pages of
        # ListItem objects on current ones.
        for page in self._index.list(**kwargs):
            items = getattr(page, "vectors", page)
            ids.extend(getattr(item, "id", item) for item in items)
            if limit is not None and len(ids) >= limit:
                return ids[:limit]
        return ids

    async def add(self, documents: list[Document], vectors: list[list[float]]) -> None:
        if len(documents) != len(vectors):
            raise ValueError(f"Got {len(documents)} documents but {len(vectors)} vectors")
        payload = []
        for doc, values in zip(documents, vectors):
            if doc.dataset_tag is None or doc.metadata.get("row") is None:
                raise ValueError("Documents need a dataset tag and a row number before upsert")
            meta = {k: v for k, v in doc.metadata.items() if v is not None}
            meta[TEXT_KEY] = doc.content
            payload.append((vector_id(doc.dataset_tag, doc.metadata["row"]), values, meta))
        if payload:
            await asyncio.to_thread(self._index.upsert, vectors=payload, namespace=self._namespace)

    async def search(self, vector: list[float], filter: dict[str, Any], k: int) -> list[Document]:
        res = await asyncio.to_thread(
            self._index.query,
            vector=vector,
            top_k=k,
            include_metadata=True,
            namespace=self._namespace,
            filter={key: {"$eq": value} for key, value in filter.items()},
        )
        docs = []
        for m in res.get("matches") or []:
            md = dict(m.get("metadata") or {})
            text = md.pop(TEXT_KEY, "")
            docs.append(Document(content=text, metadata=md))
        return docs

    async def count(self, filter: dict[str, Any]) -> int:
        ids = await asyncio.to_thread(self._ids_with_prefix, f"{_tag_of(filter)}#")
        return len(ids)

    async def exists(self, filter: dict[str, Any]) -> bool:
        ids = await asyncio.to_thread(self._ids_with_prefix, f"{_tag_of(filter)}#", 1)
        return bool(ids)

    async def delete(self, filter: dict[str, Any]) -> int:
        ids = await asyncio.to_thread(self._ids_with_prefix, f"{_tag_of(filter)}#")
        for i in range(0, len(ids), DELETE_BATCH):
            await asyncio.to_thread(
                self._index.delete, ids=ids[i:i + DELETE_BATCH], namespace=self._namespace,
            )
        logger.info("Deleted %d vectors from namespace '%s'", len(ids), self._namespace)
        return len(ids)
