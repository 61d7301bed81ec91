"""
application.services.recipe_query - Conversational retrieval-augmented recipe query.

Orchestrates the strictly sequential 4-step flow:
    1. Condense follow-up question + history into a standalone question (LLM)
    2. Retrieve top-k corpus rows for the standalone question (dataset-tag filtered)
    3. Compose the answer prompt and request a strict-JSON recipe (LLM)
    4. Parse and validate the JSON into a Recipe

No step runs before the previous one finished. There is no fallback to
the raw question when condensation fails; the request fails instead.
All upstream calls go through the request Deadline.

All dependencies are injected via constructor; each stage is also usable
on its own (the terminal chat demo reuses condenser and retriever).
"""

from __future__ import annotations

import logging
from typing import Awaitable, Optional, TypeVar

from domain.exceptions import UpstreamError
from domain.models import DATASET_TAG_KEY, ConstraintSet, Document, ParseFailure
from domain.ports import CompletionPort, EmbedderPort, VectorIndexPort
from application.context import RequestContext
from application.dto import QueryRequest, QueryResult
from application.prompts import build_condense_messages, build_recipe_messages
from application.services.constraints import build_constraint_block
from application.services.history import HistoryWindow
from application.services.output_parser import parse_recipe_json

logger = logging.getLogger(__name__)

T = TypeVar("T")

RECIPE_PARSE_ERROR = "Failed to parse recipe data from LLM response"

RECIPE_HEADER = "--- Recipe ---"
RECIPE_ROW_HEADER = "--- Recipe Row ---"


async def call_upstream(ctx: RequestContext, awaitable: Awaitable[T], stage: str) -> T:
    """Await a provider call under the request deadline.

    Provider exceptions are re-raised as UpstreamError naming the stage.
    """
    try:
        return await ctx.deadline.run(awaitable, stage=stage)
    except UpstreamError:
        raise
    except Exception as exc:
        raise UpstreamError(f"{stage} failed: {exc}") from exc


def format_documents(docs: list[Document], header: str = RECIPE_HEADER) -> str:
    return "\n\n".join(f"{header}\n{doc.content}" for doc in docs)


# ---------------------------------------------------------------------------
# Stages
# ---------------------------------------------------------------------------

class QueryCondenser:
    """Rewrite a follow-up question into a standalone one."""

    def __init__(self, completion: CompletionPort):
        self._completion = completion

    async def condense(self, ctx: RequestContext, question: str, chat_history: str) -> str:
        messages = build_condense_messages(question, chat_history)
        standalone = await call_upstream(
            ctx, self._completion.generate(messages), "query condensation",
        )
        return standalone.strip()


class RecipeRetriever:
    """Top-k similarity search restricted to one dataset tag.

    No reranking, deduplication or similarity cutoff: whatever the index
    returns is passed on, and the answer prompt tells the model to fall
    back to its own knowledge when the context does not fit.
    """

    def __init__(self, embedder: EmbedderPort, index: VectorIndexPort):
        self._embedder = embedder
        self._index = index

    async def search(
        self, ctx: RequestContext, question: str, dataset_tag: str, k: int,
    ) -> list[Document]:
        vector = await call_upstream(ctx, self._embedder.embed(question), "query embedding")
        return await call_upstream(
            ctx,
            self._index.search(vector, {DATASET_TAG_KEY: dataset_tag}, k),
            "similarity search",
        )

    async def retrieve(
        self,
        ctx: RequestContext,
        question: str,
        dataset_tag: str,
        k: int,
        header: str = RECIPE_HEADER,
    ) -> str:
        docs = await self.search(ctx, question, dataset_tag, k)
        logger.debug("Retrieved %d documents (request=%s)", len(docs), ctx.request_id)
        return format_documents(docs, header=header)


class AnswerComposer:
    """Build the answer prompt and request the strict-JSON recipe."""

    def __init__(self, completion: CompletionPort):
        self._completion = completion

    async def compose(
        self,
        ctx: RequestContext,
        question: str,
        context: str,
        chat_history: str,
        constraints: Optional[ConstraintSet],
    ) -> str:
        messages = build_recipe_messages(
            question=question,
            context=context,
            chat_history=chat_history,
            constraint_block=build_constraint_block(constraints),
        )
        return await call_upstream(
            ctx, self._completion.generate(messages), "answer generation",
        )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------

class RecipeQueryService:
    """Runs condense → retrieve → compose → parse for one chat turn.

    Stateless per call: two requests with identical history run the
    whole chain independently.
    """

    def __init__(
        self,
        condenser: QueryCondenser,
        retriever: RecipeRetriever,
        composer: AnswerComposer,
        dataset_tag: str,
        k: int = 3,
        history_window: HistoryWindow = HistoryWindow(),
    ):
        self._condenser = condenser
        self._retriever = retriever
        self._composer = composer
        self._dataset_tag = dataset_tag
        self._k = k
        self._history_window = history_window

    async def query(self, ctx: RequestContext, request: QueryRequest) -> QueryResult:
        logger.info("Recipe query (request=%s): %s", ctx.request_id, request.question[:80])
        history_text = self._history_window.format(request.chat_history)

        try:
            standalone = await self._condenser.condense(ctx, request.question, history_text)
            logger.debug("Standalone question (request=%s): %s", ctx.request_id, standalone)

            context = await self._retriever.retrieve(
                ctx, standalone, self._dataset_tag, self._k,
            )

            raw = await self._composer.compose(
                ctx,
                question=request.question,
                context=context,
                chat_history=history_text,
                constraints=request.constraints,
            )
        except UpstreamError as exc:
            logger.exception("Recipe query failed (request=%s)", ctx.request_id)
            return QueryResult.failed(str(exc))

        parsed = parse_recipe_json(raw)
        if isinstance(parsed, ParseFailure):
            logger.error(
                "Could not parse recipe (request=%s): %s\nRaw LLM response: %s",
                ctx.request_id, parsed.reason, parsed.raw_text,
            )
            return QueryResult.failed(RECIPE_PARSE_ERROR)

        logger.info("Recipe ready (request=%s): %s", ctx.request_id, parsed.title)
        return QueryResult.ok(parsed, standalone_question=standalone)
