"""Ingest pipeline for embedding text files.

Orchestrates, per file and strictly in order:
- Reading (strict UTF-8)
- Chunking (or one whole-document chunk)
- Skipping chunks that are already embedded
- Embedding generation
- Vector storage
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Sequence, Union
import structlog

from ruborag import config
from ruborag.db import EmbeddingStore
from ruborag.embedding_client import EmbeddingClient
from ruborag.errors import InvalidArgument, RuboragError
from ruborag.rag.chunker import TextChunk, TextChunker

logger = structlog.get_logger()

PathLike = Union[str, Path]


@dataclass(frozen=True)
class IngestOptions:
    """Per-run ingestion settings.

    Attributes:
        chunking: Split documents into chunk_size pieces; otherwise one chunk per file
        chunk_size: Chunk length in code points (used only when chunking)
        persist: Write embeddings to the store; otherwise only report them
    """

    chunking: bool = False
    chunk_size: int = field(default_factory=lambda: config.CHUNK_SIZE)
    persist: bool = False


@dataclass(frozen=True)
class ChunkEvent:
    """Progress notification for one chunk."""

    path: str
    source_id: str
    chunk_index: int
    chunk_count: int
    outcome: str  # "stored", "embedded" or "skipped"
    dimension: Optional[int] = None


@dataclass
class FileReport:
    """Outcome of ingesting one file."""

    path: str
    source_id: str
    chunk_count: int = 0
    embeddings_generated: int = 0
    chunks_stored: int = 0
    chunks_skipped: int = 0

    @property
    def fully_skipped(self) -> bool:
        return self.chunk_count > 0 and self.chunks_skipped == self.chunk_count


ProgressCallback = Callable[[ChunkEvent], None]


class IngestPipeline:
    """Pipeline for embedding files into the index."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        store: Optional[EmbeddingStore] = None,
        options: Optional[IngestOptions] = None,
        extensions: Optional[Sequence[str]] = None,
        progress_callback: Optional[ProgressCallback] = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            embedder: Embedding gateway
            store: Opened embedding store (required when options.persist)
            options: Ingestion settings (defaults to IngestOptions())
            extensions: File extensions picked up when walking directories
            progress_callback: Optional callable receiving a ChunkEvent per chunk

        Raises:
            InvalidArgument: If persisting without a store or chunk_size is invalid
        """
        self.embedder = embedder
        self.store = store
        self.options = options or IngestOptions()
        self.extensions = tuple(
            e.lower() for e in (extensions if extensions is not None else config.EMBED_EXTENSIONS)
        )
        self.progress_callback = progress_callback

        if self.options.persist and self.store is None:
            raise InvalidArgument("A store is required when persist is enabled")

        self.chunker = TextChunker(chunk_size=self.options.chunk_size) if self.options.chunking else None

        self.stats = self._empty_stats()

        logger.info(
            "ingest_pipeline_initialized",
            chunking=self.options.chunking,
            chunk_size=self.options.chunk_size if self.options.chunking else None,
            persist=self.options.persist,
            extensions=list(self.extensions),
        )

    @staticmethod
    def _empty_stats() -> Dict[str, Any]:
        return {
            "files_processed": 0,
            "files_failed": 0,
            "files_skipped": 0,
            "chunks_stored": 0,
            "chunks_skipped": 0,
            "embeddings_generated": 0,
            "failures": [],
        }

    def discover_files(self, path: PathLike) -> Iterator[Path]:
        """Expand an input path into the files to ingest.

        A file is returned as-is whatever its extension; a directory is walked
        recursively, in sorted order, keeping only eligible extensions.

        Raises:
            FileNotFoundError: If the path does not exist
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Input path not found: {path}")

        if not path.is_dir():
            yield path
            return

        for candidate in sorted(path.rglob("*")):
            if not candidate.is_file():
                continue
            if candidate.suffix.lower() not in self.extensions:
                logger.debug("file_not_eligible", path=str(candidate))
                continue
            yield candidate

    def _split(self, text: str) -> List[TextChunk]:
        if self.chunker is None:
            return TextChunker.single_chunk(text)
        return self.chunker.chunk_text(text)

    def _notify(self, event: ChunkEvent) -> None:
        if self.progress_callback:
            self.progress_callback(event)

    def ingest_file(self, file_path: PathLike) -> FileReport:
        """Embed one file, skipping chunks that are already stored.

        Args:
            file_path: Path to a UTF-8 text file

        Returns:
            FileReport with per-chunk counters

        Raises:
            OSError: If the file cannot be read
            UnicodeDecodeError: If the file is not valid UTF-8
            EmbeddingError: If any chunk fails to embed (the rest of the file is abandoned)
            StorageError: If any chunk fails to store
        """
        file_path = Path(file_path)
        source_id = file_path.name
        report = FileReport(path=str(file_path), source_id=source_id)

        logger.info("ingesting_file", path=str(file_path), source_id=source_id)

        text = file_path.read_text(encoding="utf-8")
        chunks = self._split(text)
        report.chunk_count = len(chunks)

        if not chunks:
            logger.warning("no_chunks_created", path=str(file_path))
            return report

        for chunk in chunks:
            event = dict(
                path=str(file_path),
                source_id=source_id,
                chunk_index=chunk.chunk_index,
                chunk_count=len(chunks),
            )

            if self.options.persist and self.store.exists(source_id, chunk.chunk_index):
                report.chunks_skipped += 1
                logger.info("chunk_already_embedded", **event)
                self._notify(ChunkEvent(outcome="skipped", **event))
                continue

            try:
                vector = self.embedder.embed(chunk.content)
                report.embeddings_generated += 1

                if self.options.persist:
                    inserted = self.store.insert_if_absent(
                        source_id, chunk.chunk_index, chunk.content, vector
                    )
                else:
                    inserted = False
            except RuboragError as e:
                logger.error(
                    "chunk_ingestion_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    **event,
                )
                raise

            if not self.options.persist:
                outcome = "embedded"
            elif inserted:
                outcome = "stored"
                report.chunks_stored += 1
            else:
                outcome = "skipped"
                report.chunks_skipped += 1

            self._notify(ChunkEvent(outcome=outcome, dimension=len(vector), **event))

        logger.info(
            "file_ingested",
            path=str(file_path),
            chunk_count=report.chunk_count,
            chunks_stored=report.chunks_stored,
            chunks_skipped=report.chunks_skipped,
            embeddings_generated=report.embeddings_generated,
        )
        return report

    def ingest_paths(self, paths: Iterable[PathLike]) -> Dict[str, Any]:
        """Ingest every file reachable from the given paths.

        A failing file is logged and counted, then the next file is processed.

        Args:
            paths: Files and/or directories

        Returns:
            Dictionary with ingestion statistics
        """
        self.stats = self._empty_stats()

        for path in paths:
            try:
                files = list(self.discover_files(path))
            except OSError as e:
                self._record_failure(path, e)
                continue

            for file_path in files:
                try:
                    report = self.ingest_file(file_path)
                except (RuboragError, OSError, UnicodeDecodeError) as e:
                    self._record_failure(file_path, e)
                    continue

                self.stats["files_processed"] += 1
                if report.fully_skipped:
                    self.stats["files_skipped"] += 1
                self.stats["chunks_stored"] += report.chunks_stored
                self.stats["chunks_skipped"] += report.chunks_skipped
                self.stats["embeddings_generated"] += report.embeddings_generated

        logger.info(
            "ingest_completed",
            **{k: v for k, v in self.stats.items() if k != "failures"},
        )
        return self.stats

    def _record_failure(self, path: PathLike, error: Exception) -> None:
        logger.error(
            "file_ingestion_failed",
            path=str(path),
            error=str(error),
            error_type=type(error).__name__,
        )
        self.stats["files_failed"] += 1
        self.stats["failures"].append((str(path), str(error)))
