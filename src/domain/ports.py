"""
domain.ports - Abstract interfaces (Protocols) for all system boundaries.

These define WHAT the pipeline needs from its external capability
providers without specifying HOW. Infrastructure modules provide
concrete implementations (LangChain chat models, HuggingFace/OpenAI
embeddings, FAISS/Pinecone indexes). Application services depend only
on these protocols, never on concrete classes.

Ports are typing.Protocol classes: any class that implements the
methods satisfies the port without inheriting from it.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from domain.models import Document


# ---------------------------------------------------------------------------
# Capability Ports
# ---------------------------------------------------------------------------

@runtime_checkable
class EmbedderPort(Protocol):
    """Compute vector embeddings for text."""

    async def embed(self, text: str) -> list[float]: ...

    async def embed_batch(self, texts: list[str]) -> list[list[float]]: ...


@runtime_checkable
class VectorIndexPort(Protocol):
    """Store documents with their vectors and run filtered top-k search.

    Filters are flat equality dicts over document metadata,
    e.g. {"dataset_tag": "recipes-v1"}.
    """

    async def add(self, documents: list[Document], vectors: list[list[float]]) -> None: ...

    async def search(
        self, vector: list[float], filter: dict[str, Any], k: int,
    ) -> list[Document]: ...

    async def count(self, filter: dict[str, Any]) -> int: ...

    async def exists(self, filter: dict[str, Any]) -> bool: ...

    async def delete(self, filter: dict[str, Any]) -> int: ...


@runtime_checkable
class CompletionPort(Protocol):
    """Single-shot text completion.

    messages is an ordered list of (role, text) pairs where role is
    "system" or "human". Returns the raw model text.
    """

    async def generate(self, messages: list[tuple[str, str]]) -> str: ...


# ---------------------------------------------------------------------------
# Corpus Port
# ---------------------------------------------------------------------------

@runtime_checkable
class CorpusSourcePort(Protocol):
    """Load the flat tabular recipe dataset as untagged Documents, in row order."""

    def load(self) -> list[Document]: ...
