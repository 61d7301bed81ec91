"""Shared pytest fixtures and in-memory fakes of every port."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Union

import pytest

from domain.models import Document
from factory import ServiceFactory
from infrastructure.config import Settings


RECIPE_JSON = {
    "title": "Grilled Chicken Power Bowl",
    "summary": "Lean chicken over rice with greens",
    "ingredients": ["200g chicken breast", "1 cup rice", "2 cups spinach"],
    "steps": ["Grill the chicken until golden", "Cook the rice", "Assemble the bowl"],
    "macros": {"calories": 480, "protein": 45, "carbs": 50, "fats": 9},
    "time": 25,
    "difficulty": "easy",
    "servings": 2,
    "explanation": "High protein and under 550 kcal",
}


def meal_plan_json(days: int = 7) -> dict[str, Any]:
    return {
        "title": f"{days}-Day Meal Plan",
        "description": "Weekly meals",
        "days": [
            {
                "day": d,
                "meals": [
                    {
                        "title": f"{meal_type.title()} {d}",
                        "description": "Simple and quick",
                        "type": meal_type,
                        "ingredients": ["eggs", "rice"],
                        "steps": ["Prep", "Cook", "Serve"],
                        "time": 15,
                    }
                    for meal_type in ("breakfast", "lunch", "dinner")
                ],
            }
            for d in range(1, days + 1)
        ],
    }


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class FakeEmbedder:
    """Deterministic 2-d vectors. Records every call in *events*."""

    def __init__(self, events: list[str] | None = None, fail_on_batch: int | None = None):
        self.events = events if events is not None else []
        self.fail_on_batch = fail_on_batch
        self.queries: list[str] = []
        self.batches: list[list[str]] = []

    async def embed(self, text: str) -> list[float]:
        self.events.append("embed")
        self.queries.append(text)
        return [float(len(text)), 1.0]

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.events.append("embed_batch")
        self.batches.append(list(texts))
        if self.fail_on_batch is not None and len(self.batches) == self.fail_on_batch:
            raise RuntimeError("429 Too Many Requests")
        return [[float(len(t)), 1.0] for t in texts]


class FakeVectorIndex:
    """Keeps documents in insertion order; search returns the first k matches."""

    def __init__(self, events: list[str] | None = None, documents: list[Document] | None = None):
        self.events = events if events is not None else []
        self.documents: list[Document] = list(documents or [])
        self.searches: list[tuple[list[float], dict[str, Any], int]] = []

    @staticmethod
    def _matches(doc: Document, filter: dict[str, Any]) -> bool:
        return all(doc.metadata.get(k) == v for k, v in filter.items())

    async def add(self, documents: list[Document], vectors: list[list[float]]) -> None:
        assert len(documents) == len(vectors)
        self.events.append("add")
        self.documents.extend(documents)

    async def search(self, vector: list[float], filter: dict[str, Any], k: int) -> list[Document]:
        self.events.append("search")
        self.searches.append((vector, dict(filter), k))
        return [d for d in self.documents if self._matches(d, filter)][:k]

    async def count(self, filter: dict[str, Any]) -> int:
        return sum(1 for d in self.documents if self._matches(d, filter))

    async def exists(self, filter: dict[str, Any]) -> bool:
        return any(self._matches(d, filter) for d in self.documents)

    async def delete(self, filter: dict[str, Any]) -> int:
        before = len(self.documents)
        self.documents = [d for d in self.documents if not self._matches(d, filter)]
        return before - len(self.documents)


Reply = Union[str, Exception, Callable[[list[tuple[str, str]]], str]]


class FakeCompletion:
    """Returns scripted replies in order. An Exception reply is raised."""

    def __init__(self, replies: list[Reply] | None = None, events: list[str] | None = None):
        self.replies = list(replies or [])
        self.events = events if events is not None else []
        self.calls: list[list[tuple[str, str]]] = []

    async def generate(self, messages: list[tuple[str, str]]) -> str:
        self.events.append("generate")
        self.calls.append(list(messages))
        if not self.replies:
            raise AssertionError("FakeCompletion ran out of scripted replies")
        reply = self.replies.pop(0)
        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return reply(messages)
        return reply


class FakeCorpusSource:
    def __init__(self, documents: list[Document]):
        self.documents = documents
        self.loads = 0

    def load(self) -> list[Document]:
        self.loads += 1
        return list(self.documents)


def make_rows(n: int, source: str = "recipes.csv") -> list[Document]:
    return [
        Document(content=f"name: Recipe {i}\nminutes: {10 + i}", metadata={"source": source, "row": i})
        for i in range(n)
    ]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def events() -> list[str]:
    return []


@pytest.fixture
def embedder(events) -> FakeEmbedder:
    return FakeEmbedder(events)


@pytest.fixture
def vector_index(events) -> FakeVectorIndex:
    return FakeVectorIndex(events)


@pytest.fixture
def recipe_reply() -> str:
    return "Here is your recipe:\n```json\n" + json.dumps(RECIPE_JSON) + "\n```"


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        project_root=tmp_path,
        corpus_path=tmp_path / "recipes.csv",
        vectorstore_path=tmp_path / "vector_databases" / "recipes",
        batch_delay_seconds=0.0,
        llm_provider="ollama",
    )


@pytest.fixture
def make_factory(settings, embedder, vector_index):
    """Factory wired to fakes. Pass completion replies and/or corpus rows."""

    def _make(replies: list[Reply] | None = None, rows: list[Document] | None = None, **overrides):
        return ServiceFactory(
            overrides.pop("config", settings),
            completion=overrides.pop("completion", None) or FakeCompletion(replies),
            embedder=overrides.pop("embedder", embedder),
            index=overrides.pop("index", vector_index),
            source=FakeCorpusSource(rows if rows is not None else make_rows(5)),
        )

    return _make
