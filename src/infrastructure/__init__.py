"""
infrastructure - Concrete implementations of domain ports.

Contains all vendor-specific code: LangChain chat models, HuggingFace/OpenAI
embeddings, FAISS, Pinecone, pandas CSV reading.
Depends on domain/ only (implements ports). Never imported by application/.
"""
