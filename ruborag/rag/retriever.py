"""Retriever for semantic search over the embedding store.

Handles:
- Query embedding generation
- Full scan of stored vectors
- Cosine ranking
- Optional chunk text lookup for display
"""
from dataclasses import dataclass
from typing import List, Optional
import structlog

from ruborag import config
from ruborag.db import EmbeddingStore
from ruborag.embedding_client import EmbeddingClient
from ruborag.errors import NothingToSearch
from ruborag.rag.similarity import SearchResult, rank

logger = structlog.get_logger()


@dataclass(frozen=True)
class RetrievalResult:
    """A ranked hit with its chunk text attached."""

    source_id: str
    chunk_index: int
    score: float
    content: Optional[str] = None

    @property
    def source(self) -> str:
        """Get a formatted source string for display."""
        return f"{self.source_id} (chunk {self.chunk_index})"


class Retriever:
    """Semantic retriever: embed the query, scan the store, rank."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: EmbeddingStore,
        top_k: Optional[int] = None,
    ):
        """Initialize the retriever.

        Args:
            embedder: Embedding gateway used for the query
            store: Opened embedding store
            top_k: Default number of results (default from config)
        """
        self.embedder = embedder
        self.store = store
        self.top_k = config.RETRIEVAL_TOP_K if top_k is None else top_k

    def search(self, query: str, top_k: Optional[int] = None) -> List[SearchResult]:
        """Rank stored chunks against a query.

        Args:
            query: Free-text query
            top_k: Number of results to return (overrides default)

        Returns:
            Up to top_k results, best first

        Raises:
            EmbeddingError: If the query cannot be embedded
            CorruptBlob: If any stored vector is malformed
            NothingToSearch: If the store holds no embeddings
        """
        top_k = self.top_k if top_k is None else top_k

        logger.info("retrieval_started", query_length=len(query), top_k=top_k)

        query_vector = self.embedder.embed(query)
        records = self.store.scan_all()

        if not records:
            logger.warning("empty_index_no_results", db_path=str(self.store.db_path))
            raise NothingToSearch(
                f"No embeddings found in {self.store.db_path}; run 'ruborag embed -w' first"
            )

        results = rank(query_vector, records, top_k)

        logger.info(
            "retrieval_completed",
            candidates=len(records),
            results_returned=len(results),
            top_score=results[0].score if results else None,
        )
        return results

    def retrieve(self, query: str, top_k: Optional[int] = None) -> List[RetrievalResult]:
        """Like :meth:`search`, with each hit's chunk text attached."""
        return [
            RetrievalResult(
                source_id=r.source_id,
                chunk_index=r.chunk_index,
                score=r.score,
                content=self.store.get_content(r.source_id, r.chunk_index),
            )
            for r in self.search(query, top_k=top_k)
        ]
