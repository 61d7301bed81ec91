"""
infrastructure.llm.completion - CompletionPort over a LangChain chat model.

Prompts arrive fully rendered from the application layer, so they are
wrapped in message objects instead of templates: literal JSON braces in
the text are never re-interpreted as placeholders.
"""

from __future__ import annotations

import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import ChatPromptTemplate

logger = logging.getLogger(__name__)

_MESSAGE_TYPES = {
    "system": SystemMessage,
    "human": HumanMessage,
    "ai": AIMessage,
}


def to_messages(messages: list[tuple[str, str]]) -> list[BaseMessage]:
    try:
        return [_MESSAGE_TYPES[role](content=text) for role, text in messages]
    except KeyError as exc:
        raise ValueError(f"Unknown message role: {exc.args[0]}") from exc


class LangChainCompletion:
    """Implements CompletionPort: prompt | llm | StrOutputParser, awaited."""

    def __init__(self, llm: BaseChatModel):
        self._llm = llm

    async def generate(self, messages: list[tuple[str, str]]) -> str:
        prompt = ChatPromptTemplate.from_messages(to_messages(messages))
        chain = prompt | self._llm | StrOutputParser()
        text = await chain.ainvoke({})
        logger.debug("LLM returned %d chars", len(text))
        return text
