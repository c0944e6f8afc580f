"""ruborag: a minimal retrieval-augmented-generation toolkit.

Documents are normalized, chunked, embedded by a remote model, stored in a
local SQLite index and retrieved by cosine similarity.
"""

__version__ = "0.1.0"
