"""Repository pattern for all SecondBrain database operations.

Single interface for: ingest items (including the status compare-and-swap
used as a distributed mutex), insights, tags, keyword search and vector
nearest-neighbour search.
"""

from __future__ import annotations

import sqlite3
import uuid

from secondbrain.db.models import IngestItem, IngestStatus, Insight, SourceKind
from secondbrain.db.vectors import to_json

_INGEST_COLUMNS = (
    "id, user_id, kind, source, raw_text, meta, status, "
    "created_at, reclaimed_at, processed_at"
)
_MAX_TAG_LENGTH = 40
_INSIGHT_COLUMNS = (
    "id, user_id, title, summary, takeaway, content, ingest_item_id, "
    "section_index, section_label, created_at, updated_at"
)


def normalize_tag_names(names: list[str]) -> list[str]:
    """Lowercase, trim and deduplicate tag names, keeping 2-40 character names."""
    seen: dict[str, None] = {}
    for name in names:
        cleaned = name.strip().lower()
        if 1 < len(cleaned) <= _MAX_TAG_LENGTH:
            seen.setdefault(cleaned, None)
    return list(seen)


def _stale_modifier(stale_after_minutes: int) -> str:
    return f"-{int(stale_after_minutes)} minutes"


class Repository:
    """Data access layer for all SecondBrain database entities.

    Wraps an open sqlite3.Connection. The connection is owned by the caller
    and must be closed after use. Each worker must use its own connection so
    that conditional updates behave as compare-and-swap operations.
    """

    def __init__(self, conn: sqlite3.Connection) -> None:
        """Initialise with an open database connection.

        Args:
            conn: An open sqlite3.Connection with sqlite-vec loaded and schema
                initialised (see secondbrain.db.schema.initialize).
        """
        self._conn = conn

    @property
    def conn(self) -> sqlite3.Connection:
        return self._conn

    # ------------------------------------------------------------------
    # Ingest items
    # ------------------------------------------------------------------

    def add_ingest_item(self, item: IngestItem) -> None:
        """Insert a new ingest item.

        ``created_at`` is taken from the item when set, otherwise the
        database default (now) applies.
        """
        columns = ["id", "user_id", "kind", "source", "raw_text", "meta", "status"]
        values: list[object] = [
            item.id,
            item.user_id,
            SourceKind(item.kind).value,
            item.source,
            item.raw_text,
            item.meta,
            IngestStatus(item.status).value,
        ]
        placeholders = ["?"] * len(values)
        if item.created_at is not None:
            columns.append("created_at")
            values.append(item.created_at)
            # Stored in the column default's "YYYY-MM-DD HH:MM:SS" form.
            placeholders.append("datetime(?)")
        self._conn.execute(
            f"INSERT INTO ingest_items ({', '.join(columns)}) VALUES ({', '.join(placeholders)})",
            values,
        )
        self._conn.commit()

    def get_ingest_item(self, item_id: str) -> IngestItem | None:
        """Return an ingest item by ID, or None if not found."""
        row = self._conn.execute(
            f"SELECT {_INGEST_COLUMNS} FROM ingest_items WHERE id = ?", (item_id,)
        ).fetchone()
        return _row_to_ingest_item(row) if row else None

    def list_ingest_items(
        self, user_id: str, ids: list[str] | None = None
    ) -> list[IngestItem]:
        """Return a user's ingest items, newest first, optionally limited to *ids*."""
        sql = f"SELECT {_INGEST_COLUMNS} FROM ingest_items WHERE user_id = ?"
        params: list[object] = [user_id]
        if ids is not None:
            if not ids:
                return []
            sql += f" AND id IN ({','.join('?' * len(ids))})"
            params.extend(ids)
        sql += " ORDER BY created_at DESC, rowid DESC"
        return [_row_to_ingest_item(r) for r in self._conn.execute(sql, params).fetchall()]

    def claim_ingest_item(self, item_id: str) -> bool:
        """Atomically move *item_id* from PENDING to PROCESSING.

        Returns True when this call won the claim, False when the row was not
        PENDING (another worker owns it, or it is terminal).
        """
        cur = self._conn.execute(
            "UPDATE ingest_items SET status = 'PROCESSING' WHERE id = ? AND status = 'PENDING'",
            (item_id,),
        )
        self._conn.commit()
        return cur.rowcount == 1

    def reset_stale_claim(self, item_id: str, stale_after_minutes: int) -> bool:
        """Reset a PROCESSING item back to PENDING if its claim is stale.

        The age is measured from the last recovery when there was one, else
        from creation, so a recovered item is not recovered again within the
        same window. Returns True when the row was reset.
        """
        cur = self._conn.execute(
            """
            UPDATE ingest_items
            SET status = 'PENDING', reclaimed_at = datetime('now')
            WHERE id = ?
              AND status = 'PROCESSING'
              AND COALESCE(reclaimed_at, created_at) < datetime('now', ?)
            """,
            (item_id, _stale_modifier(stale_after_minutes)),
        )
        self._conn.commit()
        return cur.rowcount == 1

    def reset_item(self, item_id: str, user_id: str) -> bool:
        """Operator reset of one PROCESSING or ERROR item regardless of its age."""
        cur = self._conn.execute(
            """
            UPDATE ingest_items
            SET status = 'PENDING', reclaimed_at = datetime('now'), processed_at = NULL
            WHERE id = ? AND user_id = ? AND status IN ('PROCESSING', 'ERROR')
            """,
            (item_id, user_id),
        )
        self._conn.commit()
        return cur.rowcount == 1

    def reset_stuck_items(self, user_id: str, stale_after_minutes: int) -> list[str]:
        """Reset every stale PROCESSING item of *user_id*. Returns the reset ids."""
        modifier = _stale_modifier(stale_after_minutes)
        rows = self._conn.execute(
            """
            SELECT id FROM ingest_items
            WHERE user_id = ?
              AND status = 'PROCESSING'
              AND COALESCE(reclaimed_at, created_at) < datetime('now', ?)
            ORDER BY created_at
            """,
            (user_id, modifier),
        ).fetchall()
        reset: list[str] = []
        for row in rows:
            if self.reset_stale_claim(row["id"], stale_after_minutes):
                reset.append(row["id"])
        return reset

    def update_raw_text(self, item_id: str, raw_text: str) -> None:
        """Persist text recovered by content extraction."""
        self._conn.execute(
            "UPDATE ingest_items SET raw_text = ? WHERE id = ?", (raw_text, item_id)
        )
        self._conn.commit()

    def mark_done(self, item_id: str, raw_text: str, meta: str | None) -> None:
        """Transition a claimed item to DONE and stamp processed_at."""
        self._conn.execute(
            """
            UPDATE ingest_items
            SET status = 'DONE', processed_at = datetime('now'), raw_text = ?, meta = ?
            WHERE id = ?
            """,
            (raw_text, meta, item_id),
        )
        self._conn.commit()

    def mark_error(self, item_id: str) -> None:
        """Transition an item to ERROR and stamp processed_at."""
        self._conn.rollback()
        self._conn.execute(
            """
            UPDATE ingest_items
            SET status = 'ERROR', processed_at = datetime('now')
            WHERE id = ?
            """,
            (item_id,),
        )
        self._conn.commit()

    def count_ingest_items_by_status(self, user_id: str | None = None) -> dict[IngestStatus, int]:
        """Return {status: count}, with every status present (0 when absent)."""
        sql = "SELECT status, COUNT(*) AS n FROM ingest_items"
        params: tuple[object, ...] = ()
        if user_id is not None:
            sql += " WHERE user_id = ?"
            params = (user_id,)
        sql += " GROUP BY status"
        counts = {status: 0 for status in IngestStatus}
        for row in self._conn.execute(sql, params).fetchall():
            counts[IngestStatus(row["status"])] = row["n"]
        return counts

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def add_insight(self, insight: Insight) -> str:
        """Insert an insight. Returns its id (generated when empty)."""
        insight_id = insight.id or str(uuid.uuid4())
        self._conn.execute(
            """
            INSERT INTO insights (
                id, user_id, title, summary, takeaway, content,
                ingest_item_id, section_index, section_label
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                insight_id,
                insight.user_id,
                insight.title,
                insight.summary,
                insight.takeaway,
                insight.content,
                insight.ingest_item_id,
                insight.section_index,
                insight.section_label,
            ),
        )
        self._conn.commit()
        insight.id = insight_id
        return insight_id

    def update_insight_section(self, insight: Insight) -> None:
        """Overwrite the generated fields of an existing insight in place."""
        self._conn.execute(
            """
            UPDATE insights
            SET title = ?, summary = ?, takeaway = ?, content = ?,
                section_index = ?, section_label = ?, updated_at = datetime('now')
            WHERE id = ?
            """,
            (
                insight.title,
                insight.summary,
                insight.takeaway,
                insight.content,
                insight.section_index,
                insight.section_label,
                insight.id,
            ),
        )
        self._conn.commit()

    def delete_insight(self, insight_id: str) -> None:
        """Delete an insight; tag associations cascade."""
        self._conn.execute("DELETE FROM insights WHERE id = ?", (insight_id,))
        self._conn.commit()

    def get_insight(self, insight_id: str) -> Insight | None:
        """Return an insight (with tags) by ID, or None."""
        found = self.get_insights_by_ids([insight_id])
        return found[0] if found else None

    def list_insights_for_item(self, ingest_item_id: str) -> list[Insight]:
        """Return the insights of an ingest item ordered by section index, NULLs last."""
        rows = self._conn.execute(
            f"""
            SELECT {_INSIGHT_COLUMNS} FROM insights
            WHERE ingest_item_id = ?
            ORDER BY section_index IS NULL, section_index, created_at
            """,
            (ingest_item_id,),
        ).fetchall()
        return [_row_to_insight(r) for r in rows]

    def get_insights_by_ids(self, ids: list[str]) -> list[Insight]:
        """Hydrate insights with their tags, preserving the order of *ids*.

        Unknown ids are dropped.
        """
        if not ids:
            return []
        placeholders = ",".join("?" * len(ids))
        rows = self._conn.execute(
            f"SELECT {_INSIGHT_COLUMNS} FROM insights WHERE id IN ({placeholders})",
            ids,
        ).fetchall()
        by_id = {r["id"]: _row_to_insight(r) for r in rows}
        tags = self.get_tags_for_insights(list(by_id))
        for insight_id, insight in by_id.items():
            insight.tags = tags.get(insight_id, [])
        return [by_id[i] for i in ids if i in by_id]

    def count_insights(self, user_id: str | None = None) -> tuple[int, int]:
        """Return (total insights, insights with an embedding)."""
        sql = "SELECT COUNT(*), COUNT(embedding) FROM insights"
        params: tuple[object, ...] = ()
        if user_id is not None:
            sql += " WHERE user_id = ?"
            params = (user_id,)
        row = self._conn.execute(sql, params).fetchone()
        return row[0], row[1]

    # ------------------------------------------------------------------
    # Embeddings
    # ------------------------------------------------------------------

    def set_embedding(self, insight_id: str, embedding: list[float] | None) -> None:
        """Store an insight's embedding; None or [] clears it."""
        value = to_json(embedding) if embedding else None
        self._conn.execute(
            "UPDATE insights SET embedding = ? WHERE id = ?", (value, insight_id)
        )
        self._conn.commit()

    def get_embedding(self, insight_id: str, user_id: str) -> str | None:
        """Return the raw stored embedding JSON of an owned insight, or None."""
        row = self._conn.execute(
            "SELECT embedding FROM insights WHERE id = ? AND user_id = ?",
            (insight_id, user_id),
        ).fetchone()
        return row["embedding"] if row else None

    def search_vec(
        self,
        user_id: str,
        embedding: list[float],
        limit: int = 10,
        exclude_id: str | None = None,
    ) -> list[tuple[str, float]]:
        """Nearest-neighbour search by cosine distance within one owner's insights.

        Returns (insight_id, distance) sorted by ascending distance; ties are
        broken by id so the order is stable.
        """
        if not embedding or limit < 1:
            return []
        sql = """
            SELECT id, vec_distance_cosine(embedding, ?) AS distance
            FROM insights
            WHERE user_id = ? AND embedding IS NOT NULL
        """
        params: list[object] = [to_json(embedding), user_id]
        if exclude_id is not None:
            sql += " AND id <> ?"
            params.append(exclude_id)
        sql += " ORDER BY distance, id LIMIT ?"
        params.append(limit)
        return [
            (row["id"], row["distance"])
            for row in self._conn.execute(sql, params).fetchall()
        ]

    def vector_distances(
        self, user_id: str, embedding: list[float], ids: list[str]
    ) -> dict[str, float]:
        """Return {insight_id: cosine distance} for the embedded insights among *ids*."""
        if not embedding or not ids:
            return {}
        placeholders = ",".join("?" * len(ids))
        rows = self._conn.execute(
            f"""
            SELECT id, vec_distance_cosine(embedding, ?) AS distance
            FROM insights
            WHERE user_id = ? AND embedding IS NOT NULL AND id IN ({placeholders})
            """,
            [to_json(embedding), user_id, *ids],
        ).fetchall()
        return {row["id"]: row["distance"] for row in rows}

    # ------------------------------------------------------------------
    # Keyword search
    # ------------------------------------------------------------------

    def search_keyword(self, user_id: str, query: str, limit: int = 10) -> list[str]:
        """Case-insensitive substring match over text fields and tag names.

        No relevance ranking: results come back in insertion order.
        """
        if not query or limit < 1:
            return []
        rows = self._conn.execute(
            """
            SELECT i.id FROM insights i
            WHERE i.user_id = ?
              AND (
                icontains(i.title, ?)
                OR icontains(i.summary, ?)
                OR icontains(i.takeaway, ?)
                OR icontains(i.content, ?)
                OR EXISTS (
                    SELECT 1 FROM insight_tags it
                    JOIN tags t ON t.id = it.tag_id
                    WHERE it.insight_id = i.id AND icontains(t.name, ?)
                )
              )
            ORDER BY i.rowid
            LIMIT ?
            """,
            (user_id, query, query, query, query, query, limit),
        ).fetchall()
        return [r["id"] for r in rows]

    # ------------------------------------------------------------------
    # Tags
    # ------------------------------------------------------------------

    def upsert_tag(self, user_id: str, name: str) -> str:
        """Return the id of the owner's tag *name*, creating it when missing."""
        self._conn.execute(
            "INSERT OR IGNORE INTO tags (id, user_id, name) VALUES (?, ?, ?)",
            (str(uuid.uuid4()), user_id, name),
        )
        row = self._conn.execute(
            "SELECT id FROM tags WHERE user_id = ? AND name = ?", (user_id, name)
        ).fetchone()
        self._conn.commit()
        return row["id"]

    def replace_insight_tags(self, user_id: str, insight_id: str, names: list[str]) -> list[str]:
        """Full-replace the tag set of *insight_id*. Returns the normalised names stored.

        Stale associations are cleared first; this is not a merge.
        """
        names = normalize_tag_names(names)
        self._conn.execute("DELETE FROM insight_tags WHERE insight_id = ?", (insight_id,))
        self._conn.commit()
        for name in names:
            tag_id = self.upsert_tag(user_id, name)
            self._conn.execute(
                "INSERT OR IGNORE INTO insight_tags (insight_id, tag_id) VALUES (?, ?)",
                (insight_id, tag_id),
            )
        self._conn.commit()
        return names

    def get_tags_for_insights(self, insight_ids: list[str]) -> dict[str, list[str]]:
        """Return {insight_id: [tag names sorted]} for the given ids."""
        if not insight_ids:
            return {}
        placeholders = ",".join("?" * len(insight_ids))
        rows = self._conn.execute(
            f"""
            SELECT it.insight_id, t.name FROM insight_tags it
            JOIN tags t ON t.id = it.tag_id
            WHERE it.insight_id IN ({placeholders})
            ORDER BY t.name
            """,
            insight_ids,
        ).fetchall()
        result: dict[str, list[str]] = {}
        for row in rows:
            result.setdefault(row["insight_id"], []).append(row["name"])
        return result


# ------------------------------------------------------------------
# Row → model helpers
# ------------------------------------------------------------------

def _row_to_ingest_item(row: sqlite3.Row) -> IngestItem:
    return IngestItem(
        id=row["id"],
        user_id=row["user_id"],
        kind=SourceKind(row["kind"]),
        source=row["source"],
        raw_text=row["raw_text"],
        meta=row["meta"],
        status=IngestStatus(row["status"]),
        created_at=row["created_at"],
        reclaimed_at=row["reclaimed_at"],
        processed_at=row["processed_at"],
    )


def _row_to_insight(row: sqlite3.Row) -> Insight:
    return Insight(
        id=row["id"],
        user_id=row["user_id"],
        title=row["title"],
        summary=row["summary"],
        takeaway=row["takeaway"],
        content=row["content"],
        ingest_item_id=row["ingest_item_id"],
        section_index=row["section_index"],
        section_label=row["section_label"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )
