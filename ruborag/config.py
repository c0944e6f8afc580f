"""Application configuration with sensible defaults."""
import os
from pathlib import Path

# Index database (single SQLite file, relative to the working directory)
DEFAULT_DB_NAME = "ruboragdb"
DB_PATH = Path(os.getenv("RUBORAG_DB_PATH", DEFAULT_DB_NAME))

# Embedding provider: "gemini" (default) or "ollama"
EMBEDDING_PROVIDER = os.getenv("EMBEDDING_PROVIDER", "gemini")
EMBEDDING_TIMEOUT = float(os.getenv("EMBEDDING_TIMEOUT", "30.0"))

# Gemini configuration
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_BASE_URL = os.getenv(
    "GEMINI_BASE_URL", "https://generativelanguage.googleapis.com/v1beta"
)
EMBEDDING_MODEL = os.getenv("EMBEDDING_MODEL", "gemini-embedding-001")

# Ollama configuration (local, no credential)
OLLAMA_BASE_URL = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
OLLAMA_EMBEDDING_MODEL = os.getenv("OLLAMA_EMBEDDING_MODEL", "mxbai-embed-large:latest")

# RAG parameters (code points, not bytes or tokens)
CHUNK_SIZE = int(os.getenv("CHUNK_SIZE", "1000"))
RETRIEVAL_TOP_K = int(os.getenv("RETRIEVAL_TOP_K", "5"))

# File eligibility when walking directories
EMBED_EXTENSIONS = tuple(
    ext.strip().lower()
    for ext in os.getenv("EMBED_EXTENSIONS", ".txt").split(",")
    if ext.strip()
)
PARSE_EXTENSIONS = (".html",)

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
