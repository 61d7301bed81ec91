"""
application.services.chat_demo - Free-text terminal chat over the corpus.

Same condense → retrieve → answer chain as the recipe path, but with the
cooking-only prose prompt, a wider top-k and an in-memory transcript that
grows by one human/ai pair per answered question.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass

from domain.models import ChatTurn
from domain.ports import CompletionPort
from application.context import RequestContext
from application.prompts import build_demo_messages
from application.services.history import HistoryWindow
from application.services.recipe_query import (
    RECIPE_ROW_HEADER,
    QueryCondenser,
    RecipeRetriever,
    call_upstream,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DemoAnswer:
    text: str
    elapsed_seconds: float


class ChatDemoSession:
    """One interactive conversation. Not shared between users."""

    def __init__(
        self,
        condenser: QueryCondenser,
        retriever: RecipeRetriever,
        completion: CompletionPort,
        dataset_tag: str,
        k: int = 5,
        history_window: HistoryWindow = HistoryWindow(),
        clock=time.perf_counter,
    ):
        self._condenser = condenser
        self._retriever = retriever
        self._completion = completion
        self._dataset_tag = dataset_tag
        self._k = k
        self._history_window = history_window
        self._clock = clock
        self.history: list[ChatTurn] = []

    async def ask(self, question: str, ctx: RequestContext | None = None) -> DemoAnswer:
        """Answer *question* and append the exchange to the transcript.

        The transcript is only extended when the whole chain succeeded.
        """
        ctx = ctx or RequestContext()
        started = self._clock()
        history_text = self._history_window.format(self.history)

        standalone = await self._condenser.condense(ctx, question, history_text)
        context = await self._retriever.retrieve(
            ctx, standalone, self._dataset_tag, self._k, header=RECIPE_ROW_HEADER,
        )
        answer = await call_upstream(
            ctx,
            self._completion.generate(build_demo_messages(question, context, history_text)),
            "answer generation",
        )

        self.history.append(ChatTurn(role="human", content=question))
        self.history.append(ChatTurn(role="ai", content=answer))
        return DemoAnswer(text=answer, elapsed_seconds=self._clock() - started)
