"""
application.services.history - UI messages → model transcript.

normalize() translates the web UI message list into ChatTurns;
HistoryWindow bounds what is rendered into prompts. The window is the
only memory-length control the pipeline has.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from domain.models import ChatTurn, UiMessage

_ROLE_MAP = {"user": "human", "bot": "ai", "human": "human", "ai": "ai"}


def normalize(messages: Iterable[UiMessage]) -> list[ChatTurn]:
    """Drop error turns, map user→human / bot→ai, and append the recipe
    title to turns that rendered a recipe.

    Turns already in model form (human/ai) pass through unchanged; any
    other role raises ValueError.
    """
    turns: list[ChatTurn] = []
    for msg in messages:
        if msg.is_error:
            continue
        content = msg.content
        if msg.recipe_title:
            content = f"{content}\n\nRecipe: {msg.recipe_title}"
        role = _ROLE_MAP.get(msg.role)
        if role is None:
            raise ValueError(f"Unknown chat role: {msg.role!r}")
        turns.append(ChatTurn(role=role, content=content))
    return turns


@dataclass(frozen=True)
class HistoryWindow:
    """Which part of the transcript goes into a prompt.

    max_turns: most recent turns kept (6 = three human/ai pairs).
    max_chars: optional budget for the rendered text; 0 disables it.
               The newest turn is always kept, even when it alone is over.
    """
    max_turns: int = 6
    max_chars: int = 0

    def select(self, turns: list[ChatTurn]) -> list[ChatTurn]:
        if self.max_turns <= 0:
            return []
        kept = list(turns[-self.max_turns:])
        if self.max_chars > 0:
            while len(kept) > 1 and len(render(kept)) > self.max_chars:
                kept.pop(0)
        return kept

    def format(self, turns: list[ChatTurn]) -> str:
        return render(self.select(turns))


def render(turns: list[ChatTurn]) -> str:
    return "\n".join(f"{t.role}: {t.content}" for t in turns)
