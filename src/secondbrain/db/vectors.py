"""Embedding vector helpers shared by the writer and the retrieval engine.

Embeddings are stored on the insight row as JSON text and compared with the
sqlite-vec ``vec_distance_cosine()`` scalar function, so every stored vector
must have exactly the configured dimension.
"""

from __future__ import annotations

import json
import math
import sqlite3

_DIMENSION_KEY = "embedding_dimensions"


def fit_dimension(vector: list[float], dimensions: int) -> list[float]:
    """Truncate or zero-pad *vector* to exactly *dimensions* entries.

    Non-finite components are replaced with 0.0.
    """
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")
    cleaned = [float(v) if math.isfinite(v) else 0.0 for v in vector[:dimensions]]
    if len(cleaned) < dimensions:
        cleaned.extend([0.0] * (dimensions - len(cleaned)))
    return cleaned


def to_json(vector: list[float]) -> str:
    """Serialise a vector into the JSON text accepted by sqlite-vec."""
    return json.dumps(vector)


def from_json(raw: str | None) -> list[float]:
    """Parse a stored vector; missing or malformed values yield []."""
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except ValueError:
        return []
    if not isinstance(values, list):
        return []
    return [float(v) if isinstance(v, (int, float)) else 0.0 for v in values]


def distance_to_similarity(distance: float | None) -> float | None:
    """Map a cosine distance to a similarity clamped to [0, 1].

    Returns None when *distance* is missing or NaN.
    """
    if distance is None or not isinstance(distance, (int, float)) or math.isnan(distance):
        return None
    return max(0.0, min(1.0, 1.0 - distance))


def stored_dimension(conn: sqlite3.Connection) -> int | None:
    """Return the embedding dimension recorded for this database, if any."""
    row = conn.execute(
        "SELECT value FROM settings WHERE key = ?", (_DIMENSION_KEY,)
    ).fetchone()
    return int(row[0]) if row else None


def ensure_dimension(conn: sqlite3.Connection, dimensions: int) -> int:
    """Record *dimensions* for a fresh database and return the stored value.

    An existing value is never overwritten: changing the dimension would
    invalidate every stored embedding and no re-embedding path exists.
    Callers compare the return value with their configuration.
    """
    if dimensions < 1:
        raise ValueError(f"dimensions must be >= 1, got {dimensions}")
    conn.execute(
        "INSERT OR IGNORE INTO settings (key, value) VALUES (?, ?)",
        (_DIMENSION_KEY, str(dimensions)),
    )
    conn.commit()
    current = stored_dimension(conn)
    return current if current is not None else dimensions
