"""Tests for the vector index, completion and provider-builder adapters."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from langchain_community.embeddings import FakeEmbeddings
from langchain_core.language_models.fake_chat_models import FakeListChatModel

from domain.exceptions import ConfigurationError
from infrastructure.llm.completion import LangChainCompletion, to_messages
from infrastructure.llm.llm_builder import build_llm
from infrastructure.rag.embeddings import build_embeddings
from infrastructure.rag.faiss_index import FaissVectorIndex
from infrastructure.rag.pinecone_index import PineconeVectorIndex, vector_id

from conftest import make_rows


def _vectors(n: int, offset: int = 0) -> list[list[float]]:
    return [[1.0, float(i + offset), 0.5, 0.0] for i in range(n)]


# ---------------------------------------------------------------------------
# FAISS
# ---------------------------------------------------------------------------


@pytest.fixture
def faiss_folder(tmp_path):
    return tmp_path / "faiss"


async def test_faiss_counts_and_filters_by_tag(faiss_folder) -> None:
    index = FaissVectorIndex(faiss_folder, FakeEmbeddings(size=4))
    current = [d.tagged("recipes-v1") for d in make_rows(3)]
    stale = [d.tagged("recipes-v0") for d in make_rows(4)]

    assert not await index.exists({"dataset_tag": "recipes-v1"})
    await index.add(stale, _vectors(4))
    await index.add(current, _vectors(3, offset=10))

    assert await index.exists({"dataset_tag": "recipes-v1"})
    assert await index.count({"dataset_tag": "recipes-v1"}) == 3

    # k is smaller than the store, and the closest vectors belong to the other tag.
    hits = await index.search([1.0, 0.0, 0.5, 0.0], {"dataset_tag": "recipes-v1"}, k=2)
    assert len(hits) == 2
    assert {h.dataset_tag for h in hits} == {"recipes-v1"}
    assert hits[0].content.startswith("name: Recipe")


async def test_faiss_store_survives_restart_and_purge(faiss_folder) -> None:
    index = FaissVectorIndex(faiss_folder, FakeEmbeddings(size=4))
    await index.add([d.tagged("recipes-v1") for d in make_rows(5)], _vectors(5))
    await index.add([d.tagged("recipes-v0") for d in make_rows(2)], _vectors(2))

    reopened = FaissVectorIndex(faiss_folder, FakeEmbeddings(size=4))
    assert await reopened.count({"dataset_tag": "recipes-v1"}) == 5

    assert await reopened.delete({"dataset_tag": "recipes-v1"}) == 5
    assert await reopened.count({"dataset_tag": "recipes-v1"}) == 0
    assert await FaissVectorIndex(faiss_folder, FakeEmbeddings(size=4)).count(
        {"dataset_tag": "recipes-v0"}
    ) == 2


async def test_faiss_search_on_empty_store(faiss_folder) -> None:
    index = FaissVectorIndex(faiss_folder, FakeEmbeddings(size=4))
    assert await index.search([1.0, 0.0, 0.0, 0.0], {"dataset_tag": "recipes-v1"}, k=3) == []
    assert await index.delete({"dataset_tag": "recipes-v1"}) == 0


async def test_faiss_rejects_mismatched_vectors(faiss_folder) -> None:
    index = FaissVectorIndex(faiss_folder, FakeEmbeddings(size=4))
    with pytest.raises(ValueError):
        await index.add(make_rows(2), _vectors(1))


# ---------------------------------------------------------------------------
# Pinecone
# ---------------------------------------------------------------------------


async def test_pinecone_upserts_with_tag_row_ids() -> None:
    client = MagicMock()
    index = PineconeVectorIndex(client, namespace="recipes")
    docs = [d.tagged("recipes-v1") for d in make_rows(2)]

    await index.add(docs, _vectors(2))

    kwargs = client.upsert.call_args.kwargs
    assert kwargs["namespace"] == "recipes"
    ids = [v[0] for v in kwargs["vectors"]]
    assert ids == [vector_id("recipes-v1", 0), vector_id("recipes-v1", 1)] == [
        "recipes-v1#0000000", "recipes-v1#0000001",
    ]
    assert kwargs["vectors"][0][2]["text"] == docs[0].content


async def test_pinecone_untagged_document_is_rejected() -> None:
    with pytest.raises(ValueError):
        await PineconeVectorIndex(MagicMock()).add(make_rows(1), _vectors(1))


async def test_pinecone_search_filters_on_tag() -> None:
    client = MagicMock()
    client.query.return_value = {"matches": [
        {"id": "recipes-v1#0000003", "metadata": {"text": "name: Soup", "row": 3, "dataset_tag": "recipes-v1"}},
    ]}

    hits = await PineconeVectorIndex(client).search([0.1, 0.2], {"dataset_tag": "recipes-v1"}, k=3)

    assert client.query.call_args.kwargs["filter"] == {"dataset_tag": {"$eq": "recipes-v1"}}
    assert client.query.call_args.kwargs["top_k"] == 3
    assert hits[0].content == "name: Soup"
    assert hits[0].metadata == {"row": 3, "dataset_tag": "recipes-v1"}


async def test_pinecone_count_and_delete_use_id_prefix() -> None:
    client = MagicMock()
    client.list.side_effect = lambda **kw: iter([["recipes-v1#0000000", "recipes-v1#0000001"], ["recipes-v1#0000002"]])
    index = PineconeVectorIndex(client)

    assert await index.count({"dataset_tag": "recipes-v1"}) == 3
    assert client.list.call_args.kwargs["prefix"] == "recipes-v1#"
    assert await index.delete({"dataset_tag": "recipes-v1"}) == 3
    assert client.delete.call_args.kwargs["ids"] == [
        "recipes-v1#0000000", "recipes-v1#0000001", "recipes-v1#0000002",
    ]

    with pytest.raises(ValueError):
        await index.count({"source": "recipes.csv"})


async def test_pinecone_purge_sends_string_ids_from_list_response_pages() -> None:
    models = pytest.importorskip("pinecone.core.openapi.db_data.models")
    client = MagicMock()
    client.list.side_effect = lambda **kw: iter([
        models.ListResponse(vectors=[
            models.ListItem(id="recipes-v1#0000000"),
            models.ListItem(id="recipes-v1#0000001"),
        ]),
    ])
    index = PineconeVectorIndex(client)

    assert await index.delete({"dataset_tag": "recipes-v1"}) == 2
    assert client.delete.call_args.kwargs["ids"] == ["recipes-v1#0000000", "recipes-v1#0000001"]


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------


async def test_completion_passes_literal_braces_through() -> None:
    llm = FakeListChatModel(responses=['{"title": "Soup"}'])
    completion = LangChainCompletion(llm)

    text = await completion.generate([
        ("system", 'Reply with JSON like {"title": "..."} and nothing else.'),
        ("human", "QUESTION:\nsoup"),
    ])

    assert text == '{"title": "Soup"}'


def test_to_messages_rejects_unknown_roles() -> None:
    assert [m.type for m in to_messages([("system", "a"), ("human", "b"), ("ai", "c")])] == [
        "system", "human", "ai",
    ]
    with pytest.raises(ValueError, match="Unknown message role"):
        to_messages([("tool", "x")])


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def test_build_llm_for_ollama_needs_no_key() -> None:
    from langchain_ollama import ChatOllama

    llm = build_llm(provider=" Ollama ", model="llama3.2", max_tokens=256)

    assert isinstance(llm, ChatOllama)
    assert llm.num_predict == 256


@pytest.mark.parametrize("kwargs, message", [
    (dict(provider="openai", model="gpt-4.1-mini"), "OPENAI_API_KEY"),
    (dict(provider="groq", model="llama-3.3-70b-versatile"), "GROQ_API_KEY"),
    (dict(provider="anthropic", model="x"), "Unsupported LLM_PROVIDER"),
])
def test_build_llm_rejects_bad_configuration(kwargs, message) -> None:
    with pytest.raises(ConfigurationError, match=message):
        build_llm(**kwargs)


def test_build_embeddings_rejects_bad_configuration() -> None:
    with pytest.raises(ConfigurationError, match="OPENAI_API_KEY"):
        build_embeddings(provider="openai", model="text-embedding-3-small")
    with pytest.raises(ConfigurationError, match="Unsupported EMBEDDING_PROVIDER"):
        build_embeddings(provider="cohere", model="embed-english-v3.0")


def test_factory_passes_max_tokens_to_the_chat_model(settings) -> None:
    from dataclasses import replace

    from factory import ServiceFactory

    factory = ServiceFactory(replace(settings, llm_max_tokens=300))

    assert factory.completion._llm.num_predict == 300
