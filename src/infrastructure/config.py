"""
infrastructure.config - Typed, injectable configuration.

A frozen dataclass that can be constructed from environment (.env is
loaded first) or passed explicitly in tests.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from domain.exceptions import ConfigurationError

MAX_BATCH_SIZE = 96


@dataclass(frozen=True)
class Settings:
    """Centralized configuration for the recipe RAG service.

    All paths are absolute. Construct via from_env()
    or pass explicitly in tests.
    """
    project_root: Path

    # Corpus
    corpus_path: Path
    vectorstore_path: Path
    dataset_tag: str = "recipes-v1"
    batch_size: int = 90
    batch_delay_seconds: float = 3.0

    # ── Centralized LLM Provider ────────────────────────────────
    # One setting controls every LLM stage (condense, answer,
    # meal plan, chat demo). Allowed: "openai", "groq", "ollama"
    llm_provider: str = "openai"

    # Model names; only the one matching llm_provider is used.
    llm_model_ollama: str = "llama3.2"
    llm_model_openai: str = "gpt-4.1-mini"
    llm_model_groq: str = "llama-3.3-70b-versatile"
    llm_temperature: float = 0.3
    # Completion length cap; None keeps the provider default.
    llm_max_tokens: Optional[int] = None

    # Embeddings: "huggingface" (local) or "openai"
    embedding_provider: str = "huggingface"
    embedding_model: str = "sentence-transformers/all-mpnet-base-v2"

    # Vector store: "faiss" (local folder) or "pinecone"
    vector_store: str = "faiss"
    pinecone_api_key: str = ""
    pinecone_index: str = ""
    pinecone_host: str = ""
    pinecone_namespace: str = "recipes"

    # Connection details
    ollama_base_url: str = "http://localhost:11434/"
    groq_api_key: str = ""
    openai_api_key: str = ""

    # Retrieval / history
    retrieval_k: int = 3
    demo_retrieval_k: int = 5
    history_max_turns: int = 6
    history_max_chars: int = 0

    # Request deadlines
    query_timeout_seconds: float = 60.0
    meal_plan_timeout_seconds: float = 90.0

    # HTTP server
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: tuple[str, ...] = field(default=("*",))
    log_level: str = "INFO"

    @property
    def active_llm_model(self) -> str:
        """Return the model name for the currently active LLM provider."""
        if self.llm_provider == "openai":
            return self.llm_model_openai
        elif self.llm_provider == "groq":
            return self.llm_model_groq
        return self.llm_model_ollama

    def validate(self) -> None:
        """Fail fast on missing credentials or out-of-range settings.

        Raises:
            ConfigurationError: listing every problem found.
        """
        problems: list[str] = []

        if self.llm_provider not in ("openai", "groq", "ollama"):
            problems.append(
                f"LLM_PROVIDER must be 'openai', 'groq' or 'ollama' (got '{self.llm_provider}')"
            )
        if self.llm_provider == "openai" and not self.openai_api_key:
            problems.append("OPENAI_API_KEY is required when LLM_PROVIDER='openai'")
        if self.llm_provider == "groq" and not self.groq_api_key:
            problems.append("GROQ_API_KEY is required when LLM_PROVIDER='groq'")

        if self.embedding_provider not in ("huggingface", "openai"):
            problems.append(
                "EMBEDDING_PROVIDER must be 'huggingface' or 'openai' "
                f"(got '{self.embedding_provider}')"
            )
        if self.embedding_provider == "openai" and not self.openai_api_key:
            problems.append("OPENAI_API_KEY is required when EMBEDDING_PROVIDER='openai'")

        if self.vector_store not in ("faiss", "pinecone"):
            problems.append(f"VECTOR_STORE must be 'faiss' or 'pinecone' (got '{self.vector_store}')")
        if self.vector_store == "pinecone":
            if not self.pinecone_api_key:
                problems.append("PINECONE_API_KEY is required when VECTOR_STORE='pinecone'")
            if not (self.pinecone_host or self.pinecone_index):
                problems.append("PINECONE_HOST or PINECONE_INDEX is required when VECTOR_STORE='pinecone'")

        if not 1 <= self.batch_size <= MAX_BATCH_SIZE:
            problems.append(f"BATCH_SIZE must be between 1 and {MAX_BATCH_SIZE} (got {self.batch_size})")
        if self.llm_max_tokens is not None and self.llm_max_tokens < 1:
            problems.append(f"LLM_MAX_TOKENS must be a positive integer (got {self.llm_max_tokens})")
        if self.batch_delay_seconds < 0:
            problems.append("BATCH_DELAY_SECONDS must not be negative")
        if not self.dataset_tag:
            problems.append("DATASET_TAG must not be empty")

        if problems:
            raise ConfigurationError("Invalid configuration:\n- " + "\n- ".join(problems))

    @classmethod
    def from_env(cls, project_root: Optional[Path] = None) -> Settings:
        """Build Settings from the environment and the standard project layout."""
        from dotenv import load_dotenv
        load_dotenv()

        root = project_root or Path(__file__).resolve().parent.parent.parent

        corpus_path = os.getenv("CORPUS_PATH")
        vectorstore_path = os.getenv("VECTORSTORE_PATH")
        cors = os.getenv("CORS_ORIGINS", "*")
        max_tokens = os.getenv("LLM_MAX_TOKENS", "").strip()

        return cls(
            project_root=root,
            corpus_path=Path(corpus_path) if corpus_path else root / "data" / "selected_20k_recipes.csv",
            vectorstore_path=(
                Path(vectorstore_path) if vectorstore_path else root / "vector_databases" / "recipes"
            ),
            dataset_tag=os.getenv("DATASET_TAG", "recipes-v1"),
            batch_size=int(os.getenv("BATCH_SIZE", "90")),
            batch_delay_seconds=float(os.getenv("BATCH_DELAY_SECONDS", "3.0")),

            # Centralized LLM provider
            llm_provider=os.getenv("LLM_PROVIDER", "openai").lower().strip(),
            llm_model_ollama=os.getenv("LLM_MODEL_OLLAMA", "llama3.2"),
            llm_model_openai=os.getenv("LLM_MODEL_OPENAI", "gpt-4.1-mini"),
            llm_model_groq=os.getenv("LLM_MODEL_GROQ", "llama-3.3-70b-versatile"),
            llm_temperature=float(os.getenv("LLM_TEMPERATURE", "0.3")),
            llm_max_tokens=int(max_tokens) if max_tokens else None,
            embedding_provider=os.getenv("EMBEDDING_PROVIDER", "huggingface").lower().strip(),
            embedding_model=os.getenv("EMBEDDING_MODEL", "sentence-transformers/all-mpnet-base-v2"),
            vector_store=os.getenv("VECTOR_STORE", "faiss").lower().strip(),
            pinecone_api_key=os.getenv("PINECONE_API_KEY", ""),
            pinecone_index=os.getenv("PINECONE_INDEX", ""),
            pinecone_host=os.getenv("PINECONE_HOST", ""),
            pinecone_namespace=os.getenv("PINECONE_NAMESPACE", "recipes"),
            ollama_base_url=os.getenv("OLLAMA_BASE_URL", "http://localhost:11434/"),
            groq_api_key=os.getenv("GROQ_API_KEY", ""),
            openai_api_key=os.getenv("OPENAI_API_KEY", ""),

            retrieval_k=int(os.getenv("RETRIEVAL_K", "3")),
            demo_retrieval_k=int(os.getenv("DEMO_RETRIEVAL_K", "5")),
            history_max_turns=int(os.getenv("HISTORY_MAX_TURNS", "6")),
            history_max_chars=int(os.getenv("HISTORY_MAX_CHARS", "0")),
            query_timeout_seconds=float(os.getenv("QUERY_TIMEOUT_SECONDS", "60")),
            meal_plan_timeout_seconds=float(os.getenv("MEAL_PLAN_TIMEOUT_SECONDS", "90")),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "3001")),
            cors_origins=tuple(o.strip() for o in cors.split(",") if o.strip()) or ("*",),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )


def configure_logging(level: str = "INFO") -> None:
    """Root logging setup. Called once by the launchers and the CLI."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
