"""
Run the recipe RAG REST API.

Usage:
    python run_api.py

Environment variables (see .env.example for the full list):
    LLM_PROVIDER        "openai", "groq", or "ollama" (default: openai)
    OPENAI_API_KEY      Required when LLM_PROVIDER=openai or EMBEDDING_PROVIDER=openai
    GROQ_API_KEY        Required when LLM_PROVIDER=groq
    EMBEDDING_PROVIDER  "huggingface" or "openai" (default: huggingface)
    VECTOR_STORE        "faiss" or "pinecone" (default: faiss)
    DATASET_TAG         Active corpus partition (default: recipes-v1)
    CORPUS_PATH         Source CSV (default: data/selected_20k_recipes.csv)
    HOST / PORT         Bind address (default: 0.0.0.0:3001)
"""

import sys
from pathlib import Path

# Ensure src/ is importable
sys.path.insert(0, str(Path(__file__).parent / "src"))

import uvicorn

from infrastructure.config import Settings, configure_logging

if __name__ == "__main__":
    config = Settings.from_env(project_root=Path(__file__).parent)
    configure_logging(config.log_level)
    uvicorn.run(
        "adapters.rest.app:app",
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )
