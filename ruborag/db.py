"""SQLite embedding store.

One table, ``embeddings``, holds a row per (source file, chunk index) with
the chunk text and its vector encoded by :mod:`ruborag.rag.codec`. Keys are
unique by convention (check before insert), not by a UNIQUE constraint, so
files written by older versions of the tool stay readable.
"""
import sqlite3
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union
import numpy as np
import structlog

from ruborag import config
from ruborag.errors import CorruptBlob, InvalidArgument, StorageError
from ruborag.rag import codec

logger = structlog.get_logger()

SCHEMA = """
    CREATE TABLE IF NOT EXISTS embeddings (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        source_file TEXT NOT NULL,
        chunk_index INTEGER NOT NULL,
        content TEXT NOT NULL,
        embedding BLOB NOT NULL
    )
"""

# Point lookups for exists(); deliberately not UNIQUE
SOURCE_INDEX = """
    CREATE INDEX IF NOT EXISTS idx_embeddings_source_chunk
    ON embeddings(source_file, chunk_index)
"""


@dataclass(frozen=True)
class StoredEmbedding:
    """A decoded row as returned by a full scan."""

    source_id: str
    chunk_index: int
    vector: np.ndarray


class EmbeddingStore:
    """Durable (source_id, chunk_index) -> (content, vector) table."""

    def __init__(self, db_path: Union[str, Path, None] = None):
        """Initialize the store.

        Args:
            db_path: Path to the SQLite file (default from config)
        """
        self.db_path = Path(db_path) if db_path is not None else config.DB_PATH
        self.dimension: Optional[int] = None
        self._conn: Optional[sqlite3.Connection] = None

    def open(self) -> "EmbeddingStore":
        """Open the database, create the schema and detect the dimension.

        Raises:
            StorageError: If the file cannot be opened or initialized
        """
        if self._conn is not None:
            return self

        try:
            # Autocommit; write transactions are opened explicitly
            conn = sqlite3.connect(str(self.db_path), isolation_level=None)
            conn.row_factory = sqlite3.Row
        except sqlite3.Error as e:
            logger.error("database_open_failed", db_path=str(self.db_path), error=str(e))
            raise StorageError(f"Failed to open database {self.db_path}: {e}") from e

        try:
            conn.execute(SCHEMA)
            conn.execute(SOURCE_INDEX)
            row = conn.execute(
                "SELECT embedding FROM embeddings ORDER BY id LIMIT 1"
            ).fetchone()
        except sqlite3.Error as e:
            conn.close()
            logger.error("database_init_failed", db_path=str(self.db_path), error=str(e))
            raise StorageError(f"Failed to initialize database {self.db_path}: {e}") from e

        self._conn = conn
        self.dimension = codec.dimension_of(row["embedding"]) if row else None

        logger.info(
            "database_opened",
            db_path=str(self.db_path),
            dimension=self.dimension,
        )
        return self

    def close(self) -> None:
        """Close the underlying connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "EmbeddingStore":
        return self.open()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    @property
    def connection(self) -> sqlite3.Connection:
        if self._conn is None:
            raise StorageError("Embedding store is not open. Call open() first.")
        return self._conn

    def exists(self, source_id: str, chunk_index: int) -> bool:
        """Check whether a chunk has already been embedded.

        Args:
            source_id: Source file identifier
            chunk_index: Zero-based chunk index

        Returns:
            True if a row with this key exists
        """
        try:
            return self._exists(source_id, chunk_index)
        except sqlite3.Error as e:
            logger.error("exists_check_failed", source_id=source_id, error=str(e))
            raise StorageError(f"Failed to query embeddings: {e}") from e

    def _exists(self, source_id: str, chunk_index: int) -> bool:
        row = self.connection.execute(
            "SELECT 1 FROM embeddings WHERE source_file = ? AND chunk_index = ? LIMIT 1",
            (source_id, chunk_index),
        ).fetchone()
        return row is not None

    def insert(
        self,
        source_id: str,
        chunk_index: int,
        content: str,
        vector: Union[Sequence[float], np.ndarray],
    ) -> int:
        """Insert an embedding row without checking for an existing key.

        Args:
            source_id: Source file identifier
            chunk_index: Zero-based chunk index
            content: Chunk text
            vector: Embedding vector

        Returns:
            Row ID of the inserted embedding

        Raises:
            InvalidArgument: If the vector is empty or its dimension differs from the store
            StorageError: On any database failure
        """
        blob, dimension = self._encode_checked(vector)
        conn = self.connection

        try:
            conn.execute("BEGIN")
            row_id = self._insert_row(source_id, chunk_index, content, blob)
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback()
            logger.error("embedding_insert_failed", source_id=source_id, error=str(e))
            raise StorageError(f"Failed to insert embedding: {e}") from e

        self._remember_dimension(dimension)
        return row_id

    def insert_if_absent(
        self,
        source_id: str,
        chunk_index: int,
        content: str,
        vector: Union[Sequence[float], np.ndarray],
    ) -> bool:
        """Insert an embedding unless its key is already present.

        The check and the insert run inside one write-locked transaction, so
        two writers can never both insert the same key.

        Returns:
            True if a row was inserted, False if the key already existed

        Raises:
            InvalidArgument: If the vector is empty or its dimension differs from the store
            StorageError: On any database failure
        """
        blob, dimension = self._encode_checked(vector)
        conn = self.connection

        try:
            conn.execute("BEGIN IMMEDIATE")
            if self._exists(source_id, chunk_index):
                conn.execute("COMMIT")
                return False
            self._insert_row(source_id, chunk_index, content, blob)
            conn.execute("COMMIT")
        except sqlite3.Error as e:
            self._rollback()
            logger.error("embedding_insert_failed", source_id=source_id, error=str(e))
            raise StorageError(f"Failed to insert embedding: {e}") from e

        self._remember_dimension(dimension)
        return True

    def scan_all(self) -> List[StoredEmbedding]:
        """Load and decode every stored vector.

        Returns:
            All rows in insertion order

        Raises:
            CorruptBlob: On the first row that cannot be decoded or whose
                dimension differs from the first row
            StorageError: On any database failure
        """
        try:
            rows = self.connection.execute(
                "SELECT id, source_file, chunk_index, embedding FROM embeddings ORDER BY id"
            ).fetchall()
        except sqlite3.Error as e:
            logger.error("embeddings_scan_failed", error=str(e))
            raise StorageError(f"Failed to read embeddings: {e}") from e

        records = []
        expected = None
        for row in rows:
            try:
                vector = codec.decode(row["embedding"])
            except CorruptBlob as e:
                logger.error("corrupt_embedding_blob", row_id=row["id"], error=str(e))
                raise CorruptBlob(f"Row {row['id']} ({row['source_file']}): {e}") from e

            if vector.size == 0:
                raise CorruptBlob(f"Row {row['id']} ({row['source_file']}): empty vector")
            if expected is None:
                expected = vector.size
            elif vector.size != expected:
                raise CorruptBlob(
                    f"Row {row['id']} ({row['source_file']}): dimension {vector.size}, "
                    f"expected {expected}"
                )

            records.append(
                StoredEmbedding(
                    source_id=row["source_file"],
                    chunk_index=row["chunk_index"],
                    vector=vector,
                )
            )

        logger.debug("embeddings_scanned", count=len(records), dimension=expected)
        return records

    def get_content(self, source_id: str, chunk_index: int) -> Optional[str]:
        """Get the stored text of a chunk, or None if it is not indexed."""
        try:
            row = self.connection.execute(
                """
                SELECT content FROM embeddings
                WHERE source_file = ? AND chunk_index = ?
                ORDER BY id LIMIT 1
                """,
                (source_id, chunk_index),
            ).fetchone()
        except sqlite3.Error as e:
            logger.error("content_lookup_failed", source_id=source_id, error=str(e))
            raise StorageError(f"Failed to read chunk content: {e}") from e

        return row["content"] if row else None

    def count(self) -> int:
        """Get the total number of stored embeddings."""
        try:
            return self.connection.execute("SELECT COUNT(*) FROM embeddings").fetchone()[0]
        except sqlite3.Error as e:
            logger.error("embedding_count_failed", error=str(e))
            raise StorageError(f"Failed to count embeddings: {e}") from e

    def get_stats(self) -> Dict[str, Any]:
        """Get statistics about the store.

        Returns:
            Dictionary with total count, dimension and per-source chunk counts
        """
        try:
            rows = self.connection.execute(
                """
                SELECT source_file, COUNT(*) AS chunks
                FROM embeddings
                GROUP BY source_file
                ORDER BY source_file
                """
            ).fetchall()
        except sqlite3.Error as e:
            logger.error("embedding_stats_failed", error=str(e))
            raise StorageError(f"Failed to read store statistics: {e}") from e

        sources = {row["source_file"]: row["chunks"] for row in rows}
        return {
            "db_path": str(self.db_path),
            "total_embeddings": sum(sources.values()),
            "total_sources": len(sources),
            "dimension": self.dimension,
            "sources": sources,
        }

    def _encode_checked(self, vector) -> tuple:
        array = np.asarray(vector, dtype=np.float32).ravel()

        if array.size == 0:
            raise InvalidArgument("Embedding cannot be empty")

        if self.dimension is not None and array.size != self.dimension:
            raise InvalidArgument(
                f"Embedding dimension mismatch: store holds {self.dimension}, "
                f"got {array.size}. Rebuild the index to switch models."
            )

        return codec.encode(array), int(array.size)

    def _insert_row(self, source_id: str, chunk_index: int, content: str, blob: bytes) -> int:
        cursor = self.connection.execute(
            """
            INSERT INTO embeddings (source_file, chunk_index, content, embedding)
            VALUES (?, ?, ?, ?)
            """,
            (source_id, chunk_index, content, blob),
        )
        return cursor.lastrowid

    def _remember_dimension(self, dimension: int) -> None:
        if self.dimension is None:
            self.dimension = dimension
            logger.info("store_dimension_set", dimension=dimension)

    def _rollback(self) -> None:
        if self._conn is not None and self._conn.in_transaction:
            try:
                self._conn.execute("ROLLBACK")
            except sqlite3.Error as e:
                logger.warning("rollback_failed", error=str(e))
