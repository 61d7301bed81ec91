"""
factory - Composition root for the recipe RAG service.

ALL dependency wiring happens here. No other module constructs its own
dependencies. Adapters (CLI, REST) call this factory to get fully
configured services.

Usage:
    from factory import ServiceFactory
    from infrastructure.config import Settings

    config = Settings.from_env()
    factory = ServiceFactory(config)
    await factory.initialize()  # one-time startup: ensure the corpus is indexed

    service = factory.create_query_service()
    result = await service.query(ctx, request)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from domain.ports import CompletionPort, CorpusSourcePort, EmbedderPort, VectorIndexPort
from application.context import AppState
from application.dto import LoadReport
from application.services.chat_demo import ChatDemoSession
from application.services.corpus_loader import CorpusLoader
from application.services.history import HistoryWindow
from application.services.meal_plan import MealPlanService
from application.services.recipe_query import (
    AnswerComposer,
    QueryCondenser,
    RecipeQueryService,
    RecipeRetriever,
)
from infrastructure.config import Settings

logger = logging.getLogger(__name__)


class ServiceFactory:
    """Composition root. Wires all dependencies together.

    Provider adapters are built lazily on first use, so commands that never
    touch the LLM (status, purge) do not pay for it. Any adapter can be
    passed in explicitly instead, which is how tests swap in fakes.
    """

    def __init__(
        self,
        config: Settings,
        *,
        completion: Optional[CompletionPort] = None,
        embedder: Optional[EmbedderPort] = None,
        index: Optional[VectorIndexPort] = None,
        source: Optional[CorpusSourcePort] = None,
        state: Optional[AppState] = None,
    ):
        self._config = config
        self._completion = completion
        self._embedder = embedder
        self._index = index
        self._source = source
        self.state = state or AppState()

    @property
    def config(self) -> Settings:
        return self._config

    async def initialize(self) -> LoadReport:
        """One-time startup: make sure the corpus is indexed, then go READY.

        Raises:
            CorpusLoadError: a batch failed. The state stays LOADING; the
                caller is expected to terminate the process.
        """
        logger.info("Initializing ServiceFactory...")
        self.state.start_loading()
        # Adapter construction reads models and index files from disk.
        loader = await asyncio.to_thread(self.create_corpus_loader)
        report = await loader.ensure_indexed()
        self.state.mark_ready()
        logger.info("ServiceFactory ready")
        return report

    # ------------------------------------------------------------------
    # Adapters (lazy singletons)
    # ------------------------------------------------------------------

    @property
    def completion(self) -> CompletionPort:
        if self._completion is None:
            from infrastructure.llm.completion import LangChainCompletion
            from infrastructure.llm.llm_builder import build_llm

            cfg = self._config
            self._completion = LangChainCompletion(build_llm(
                provider=cfg.llm_provider,
                model=cfg.active_llm_model,
                temperature=cfg.llm_temperature,
                ollama_base_url=cfg.ollama_base_url,
                openai_api_key=cfg.openai_api_key,
                groq_api_key=cfg.groq_api_key,
                max_tokens=cfg.llm_max_tokens,
            ))
        return self._completion

    @property
    def embedder(self) -> EmbedderPort:
        if self._embedder is None:
            from infrastructure.rag.embeddings import LangChainEmbedder, build_embeddings

            self._embedder = LangChainEmbedder(build_embeddings(
                provider=self._config.embedding_provider,
                model=self._config.embedding_model,
                openai_api_key=self._config.openai_api_key,
            ))
        return self._embedder

    @property
    def index(self) -> VectorIndexPort:
        if self._index is None:
            cfg = self._config
            if cfg.vector_store == "pinecone":
                from infrastructure.rag.pinecone_index import PineconeVectorIndex, get_pinecone_index

                self._index = PineconeVectorIndex(
                    get_pinecone_index(
                        api_key=cfg.pinecone_api_key,
                        host=cfg.pinecone_host,
                        index_name=cfg.pinecone_index,
                    ),
                    namespace=cfg.pinecone_namespace,
                )
                logger.info("Using Pinecone index (namespace=%s)", cfg.pinecone_namespace)
            else:
                from infrastructure.rag.faiss_index import FaissVectorIndex

                # FAISS only needs the Embeddings object for (de)serialization.
                embeddings = getattr(self.embedder, "embeddings", None)
                self._index = FaissVectorIndex(cfg.vectorstore_path, embeddings)
                logger.info("Using FAISS index at %s", cfg.vectorstore_path)
        return self._index

    @property
    def source(self) -> CorpusSourcePort:
        if self._source is None:
            from infrastructure.rag.csv_source import CsvCorpusSource

            self._source = CsvCorpusSource(self._config.corpus_path)
        return self._source

    def _history_window(self) -> HistoryWindow:
        return HistoryWindow(
            max_turns=self._config.history_max_turns,
            max_chars=self._config.history_max_chars,
        )

    # ------------------------------------------------------------------
    # Service creation
    # ------------------------------------------------------------------

    def create_corpus_loader(self) -> CorpusLoader:
        return CorpusLoader(
            source=self.source,
            embedder=self.embedder,
            index=self.index,
            dataset_tag=self._config.dataset_tag,
            batch_size=self._config.batch_size,
            delay_seconds=self._config.batch_delay_seconds,
        )

    def create_retriever(self) -> RecipeRetriever:
        return RecipeRetriever(embedder=self.embedder, index=self.index)

    def create_query_service(self) -> RecipeQueryService:
        return RecipeQueryService(
            condenser=QueryCondenser(self.completion),
            retriever=self.create_retriever(),
            composer=AnswerComposer(self.completion),
            dataset_tag=self._config.dataset_tag,
            k=self._config.retrieval_k,
            history_window=self._history_window(),
        )

    def create_meal_plan_service(self, days: int = 7) -> MealPlanService:
        return MealPlanService(completion=self.completion, days=days)

    def create_chat_session(self) -> ChatDemoSession:
        """Each terminal chat gets its own session and transcript."""
        return ChatDemoSession(
            condenser=QueryCondenser(self.completion),
            retriever=self.create_retriever(),
            completion=self.completion,
            dataset_tag=self._config.dataset_tag,
            k=self._config.demo_retrieval_k,
            history_window=self._history_window(),
        )
