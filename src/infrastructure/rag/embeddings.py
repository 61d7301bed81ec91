"""
infrastructure.rag.embeddings - EmbedderPort over LangChain Embeddings.

HuggingFace sentence-transformers run locally and need no key; OpenAI
embeddings are the hosted alternative.
"""

from __future__ import annotations

import logging

from langchain_core.embeddings import Embeddings

from domain.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def build_embeddings(*, provider: str, model: str, openai_api_key: str = "") -> Embeddings:
    provider = provider.lower().strip()

    if provider == "huggingface":
        from langchain_huggingface import HuggingFaceEmbeddings

        logger.info("Loading HuggingFace embeddings (model=%s)", model)
        return HuggingFaceEmbeddings(
            model_name=model,
            encode_kwargs={"normalize_embeddings": True},
        )

    elif provider == "openai":
        from langchain_openai import OpenAIEmbeddings

        if not openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is required when EMBEDDING_PROVIDER='openai'")

        logger.info("Building OpenAI embeddings (model=%s)", model)
        return OpenAIEmbeddings(model=model, openai_api_key=openai_api_key)

    raise ConfigurationError(
        f"Unsupported EMBEDDING_PROVIDER: '{provider}'. Must be 'huggingface' or 'openai'."
    )


class LangChainEmbedder:
    """Implements EmbedderPort."""

    def __init__(self, embeddings: Embeddings):
        self._embeddings = embeddings

    @property
    def embeddings(self) -> Embeddings:
        return self._embeddings

    async def embed(self, text: str) -> list[float]:
        return await self._embeddings.aembed_query(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []
        return await self._embeddings.aembed_documents(texts)
