"""RAG pipeline components.

This package contains modules for:
- HTML text extraction
- Fixed-size document chunking
- Binary vector encoding
- Cosine similarity ranking
- Ingestion and retrieval orchestration
"""
