"""Command-line interface for ruborag.

Usage:
    ruborag parse [-w] PATH...                       # HTML -> plain text
    ruborag embed [-w] [--chunk] PATH...             # embed text files
    ruborag search [-k N] "what is borrowing"        # semantic search
    ruborag stats                                    # index summary
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional
import structlog

from ruborag import config
from ruborag.db import EmbeddingStore
from ruborag.embedding_client import get_embedding_client
from ruborag.errors import (
    ConfigurationError,
    CorruptBlob,
    EmbeddingError,
    InvalidArgument,
    NothingToSearch,
    StorageError,
)
from ruborag.rag.html_parser import HTMLTextExtractor
from ruborag.rag.ingest import ChunkEvent, IngestOptions, IngestPipeline
from ruborag.rag.retriever import Retriever

logger = structlog.get_logger()


def configure_logging(level: str = config.LOG_LEVEL) -> None:
    """Send structured logs to stderr so stdout carries only command output."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.INFO),
        force=True,
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )


class ProgressReporter:
    """Prints one progress line per chunk to stdout."""

    def __init__(self, out=None):
        self.out = out or sys.stdout

    def __call__(self, event: ChunkEvent) -> None:
        position = f"chunk {event.chunk_index + 1}/{event.chunk_count}"
        if event.outcome == "skipped":
            line = f"already embedded {event.path} ({position}), skipping"
        elif event.outcome == "stored":
            line = f"stored embedding for {event.path} ({position})"
        else:
            line = f"embedded {event.path} ({position}, {event.dimension} dimensions)"
        print(line, file=self.out, flush=True)


def cmd_parse(args) -> int:
    extractor = HTMLTextExtractor()
    failures = 0

    for raw_path in args.paths:
        path = Path(raw_path)
        if not path.exists():
            print(f"error accessing {path}: no such file or directory", file=sys.stderr)
            failures += 1
            continue

        if path.is_dir():
            files = sorted(
                p for p in path.rglob("*")
                if p.is_file() and p.suffix.lower() in config.PARSE_EXTENSIONS
            )
        elif path.suffix.lower() not in config.PARSE_EXTENSIONS:
            print(f"skipping non-html file: {path}", file=sys.stderr)
            continue
        else:
            files = [path]

        for file_path in files:
            try:
                text = extractor.parse_file(file_path)
            except (OSError, UnicodeDecodeError) as e:
                print(f"error parsing file {file_path}: {e}", file=sys.stderr)
                failures += 1
                continue

            if not args.write:
                print(text)
                continue

            out_path = file_path.with_name(f"{file_path.stem}-parsed.txt")
            try:
                out_path.write_text(text, encoding="utf-8")
            except OSError as e:
                print(f"error writing file {out_path}: {e}", file=sys.stderr)
                failures += 1
                continue
            print(f"wrote {out_path}")

    return 1 if failures else 0


def cmd_embed(args) -> int:
    options = IngestOptions(
        chunking=args.chunk,
        chunk_size=args.chunk_size,
        persist=args.write,
    )

    try:
        embedder = get_embedding_client(args.provider)
    except (ConfigurationError, InvalidArgument) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    store = None
    if options.persist:
        try:
            store = EmbeddingStore(args.db).open()
        except StorageError as e:
            print(f"failed to open database: {e}", file=sys.stderr)
            return 1

    try:
        pipeline = IngestPipeline(
            embedder=embedder,
            store=store,
            options=options,
            progress_callback=ProgressReporter(),
        )
        stats = pipeline.ingest_paths(args.paths)
    except InvalidArgument as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        if store is not None:
            store.close()

    for path, error in stats["failures"]:
        print(f"embedding failed for {path}: {error}", file=sys.stderr)

    print(
        f"{stats['files_processed']} file(s) processed, "
        f"{stats['files_failed']} failed, "
        f"{stats['embeddings_generated']} embedding(s) generated, "
        f"{stats['chunks_stored']} stored, "
        f"{stats['chunks_skipped']} skipped"
    )
    return 1 if stats["files_failed"] else 0


def cmd_search(args) -> int:
    try:
        embedder = get_embedding_client(args.provider)
    except (ConfigurationError, InvalidArgument) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        with EmbeddingStore(args.db) as store:
            retriever = Retriever(embedder, store, top_k=args.top_k)
            if args.show_content:
                results = retriever.retrieve(args.query)
            else:
                results = retriever.search(args.query)
    except NothingToSearch as e:
        print(f"nothing to search: {e}", file=sys.stderr)
        return 1
    except (EmbeddingError, CorruptBlob, StorageError, InvalidArgument) as e:
        print(f"search failed: {e}", file=sys.stderr)
        return 1

    print(f"Top {len(results)} results:\n")
    for i, r in enumerate(results, 1):
        print(f"{i}. {r.source_id} (chunk {r.chunk_index}) - score: {r.score:.4f}")
        if args.show_content and r.content:
            preview = r.content if len(r.content) <= args.max_chars else r.content[: args.max_chars] + "..."
            print(f"   {preview}\n")
    return 0


def cmd_stats(args) -> int:
    try:
        with EmbeddingStore(args.db) as store:
            stats = store.get_stats()
    except StorageError as e:
        print(f"failed to open database: {e}", file=sys.stderr)
        return 1

    print(f"Index:       {stats['db_path']}")
    print(f"Embeddings:  {stats['total_embeddings']}")
    print(f"Sources:     {stats['total_sources']}")
    print(f"Dimension:   {stats['dimension'] if stats['dimension'] is not None else '-'}")
    for source_id, chunks in stats["sources"].items():
        print(f"  {source_id}: {chunks} chunk(s)")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ruborag",
        description="A minimal RAG tool: parse, embed and search documents",
    )
    parser.add_argument(
        "--log-level",
        default=config.LOG_LEVEL,
        help=f"Log level for stderr output (default: {config.LOG_LEVEL})",
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    pp = sub.add_parser("parse", help="Extract readable text from HTML files")
    pp.add_argument("paths", nargs="+", help="HTML files or directories")
    pp.add_argument(
        "-w", "--write", action="store_true",
        help="Write <name>-parsed.txt next to each input instead of printing",
    )
    pp.set_defaults(func=cmd_parse)

    pe = sub.add_parser("embed", help="Generate vector embeddings of text files")
    pe.add_argument("paths", nargs="+", help="Files or directories to embed")
    pe.add_argument("-w", "--write", action="store_true", help="Write embeddings to the index")
    pe.add_argument("--chunk", action="store_true", help="Split files into fixed-size chunks")
    pe.add_argument(
        "--chunk-size", type=int, default=config.CHUNK_SIZE,
        help=f"Chunk size in characters (default: {config.CHUNK_SIZE})",
    )
    pe.add_argument("--db", type=Path, default=config.DB_PATH, help="Index database path")
    pe.add_argument("--provider", default=None, help="Embedding provider (gemini, ollama)")
    pe.set_defaults(func=cmd_embed)

    ps = sub.add_parser("search", help="Search indexed content by semantic similarity")
    ps.add_argument("query", help="Search query")
    ps.add_argument(
        "-k", "--top-k", type=int, default=config.RETRIEVAL_TOP_K,
        help=f"Number of results to return (default: {config.RETRIEVAL_TOP_K})",
    )
    ps.add_argument("--db", type=Path, default=config.DB_PATH, help="Index database path")
    ps.add_argument("--provider", default=None, help="Embedding provider (gemini, ollama)")
    ps.add_argument("--show-content", action="store_true", help="Print chunk text under each hit")
    ps.add_argument("--max-chars", type=int, default=300, help="Preview length with --show-content")
    ps.set_defaults(func=cmd_search)

    pst = sub.add_parser("stats", help="Summarize the index")
    pst.add_argument("--db", type=Path, default=config.DB_PATH, help="Index database path")
    pst.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)

    try:
        return args.func(args)
    except KeyboardInterrupt:
        print("\ncancelled by user", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
