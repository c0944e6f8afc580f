"""Pytest configuration and shared fixtures."""
from typing import Dict, List, Optional

import numpy as np
import pytest

from ruborag.db import EmbeddingStore
from ruborag.errors import ModelError


class FakeEmbedder:
    """Deterministic in-process stand-in for the embedding gateway.

    Returns a fixed vector per known text, otherwise a vector derived from
    the text length. Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        vectors: Optional[Dict[str, List[float]]] = None,
        dimension: int = 3,
        fail_on: Optional[str] = None,
    ):
        self.vectors = vectors or {}
        self.dimension = dimension
        self.fail_on = fail_on
        self.calls: List[str] = []

    def embed(self, text: str) -> np.ndarray:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            raise ModelError(f"input rejected: {text[:20]!r}")
        if text in self.vectors:
            return np.asarray(self.vectors[text], dtype=np.float32)
        base = float(len(text) % 7 + 1)
        return np.asarray(
            [base + i for i in range(self.dimension)], dtype=np.float32
        )


@pytest.fixture
def make_embedder():
    """Factory for FakeEmbedder instances with custom behaviour."""
    return FakeEmbedder


@pytest.fixture
def fake_embedder():
    """Fake embedder producing 3-dimensional vectors."""
    return FakeEmbedder()


@pytest.fixture
def db_path(tmp_path):
    """Path for a throwaway index database."""
    return tmp_path / "ruboragdb"


@pytest.fixture
def store(db_path):
    """Opened embedding store, closed after the test."""
    with EmbeddingStore(db_path) as opened:
        yield opened


@pytest.fixture
def corpus_dir(tmp_path):
    """Directory with two eligible text files and one ineligible file."""
    root = tmp_path / "corpus"
    (root / "nested").mkdir(parents=True)
    (root / "a.txt").write_text("Ownership rules in Rust.", encoding="utf-8")
    (root / "nested" / "b.txt").write_text("Borrowing and references.", encoding="utf-8")
    (root / "notes.html").write_text("<p>not eligible</p>", encoding="utf-8")
    return root
