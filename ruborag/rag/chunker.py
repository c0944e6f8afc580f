"""Fixed-size text chunking for the embedding pipeline.

Splits on Unicode code points (Python string positions), never on raw bytes,
so a multi-byte UTF-8 character is never cut in half. Chunks do not overlap
and are numbered densely from zero in document order.
"""
from typing import List, Optional
from dataclasses import dataclass
import structlog

from ruborag import config
from ruborag.errors import InvalidArgument

logger = structlog.get_logger()


@dataclass(frozen=True)
class TextChunk:
    """Represents a chunk of text with position information."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


def chunk(text: str, size: int) -> List[str]:
    """Split text into consecutive segments of at most ``size`` code points.

    Args:
        text: Normalized document text
        size: Maximum segment length in code points

    Returns:
        Ordered list of segments; empty when ``text`` is empty

    Raises:
        InvalidArgument: If size is not a positive integer
    """
    if isinstance(size, bool) or not isinstance(size, int) or size <= 0:
        raise InvalidArgument(f"Chunk size must be a positive integer, got {size!r}")

    return [text[start : start + size] for start in range(0, len(text), size)]


class TextChunker:
    """Code-point based text chunker without overlap."""

    def __init__(self, chunk_size: Optional[int] = None):
        """Initialize the text chunker.

        Args:
            chunk_size: Size of each chunk in code points (default from config)

        Raises:
            InvalidArgument: If chunk_size is not positive
        """
        self.chunk_size = config.CHUNK_SIZE if chunk_size is None else chunk_size

        if isinstance(self.chunk_size, bool) or not isinstance(self.chunk_size, int) or self.chunk_size <= 0:
            raise InvalidArgument(
                f"Chunk size must be a positive integer, got {self.chunk_size!r}"
            )

        logger.debug("chunker_initialized", chunk_size=self.chunk_size)

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split text into fixed-size chunks.

        Args:
            text: Text to chunk

        Returns:
            List of TextChunk objects
        """
        chunks = []
        start = 0
        for index, content in enumerate(chunk(text, self.chunk_size)):
            end = start + len(content)
            chunks.append(
                TextChunk(
                    content=content,
                    char_start=start,
                    char_end=end,
                    chunk_index=index,
                )
            )
            start = end

        if chunks:
            logger.debug(
                "text_chunked",
                text_length=len(text),
                chunk_count=len(chunks),
                chunk_size=self.chunk_size,
            )

        return chunks

    @staticmethod
    def single_chunk(text: str) -> List[TextChunk]:
        """Treat a whole document as chunk 0, regardless of its length."""
        return [TextChunk(content=text, char_start=0, char_end=len(text), chunk_index=0)]
