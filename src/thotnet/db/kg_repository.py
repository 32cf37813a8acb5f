"""Repository functions for the knowledge graph (kg_entities, kg_relations)."""

from __future__ import annotations

import json
import sqlite3
from dataclasses import dataclass

import structlog

from thotnet.db.database import Database, new_id, utc_now

logger = structlog.get_logger(__name__)

ENTITY_TYPES = ("person", "organization", "model", "concept", "paper", "dataset", "product", "technology")


@dataclass
class EntityRecord:
    id: str
    name: str
    type: str
    description: str | None
    aliases: list[str]
    created_at: str


@dataclass
class RelationRecord:
    id: str
    source_id: str
    target_id: str
    rel_type: str
    weight: float
    created_at: str


def insert_entity(
    db: Database,
    name: str,
    entity_type: str,
    description: str | None = None,
    aliases: list[str] | None = None,
) -> EntityRecord:
    entity_id = new_id()
    with db.connect() as conn:
        conn.execute(
            """
            INSERT INTO kg_entities (id, name, type, description, aliases, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (entity_id, name, entity_type, description, json.dumps(aliases or [], ensure_ascii=False), utc_now()),
        )
        row = conn.execute("SELECT * FROM kg_entities WHERE id = ?", (entity_id,)).fetchone()

    logger.debug("kg_entities.inserted", entity_id=entity_id, type=entity_type)
    return _row_to_entity(row)


def get_entity(db: Database, entity_id: str) -> EntityRecord | None:
    with db.connect() as conn:
        row = conn.execute("SELECT * FROM kg_entities WHERE id = ?", (entity_id,)).fetchone()
    return _row_to_entity(row) if row else None


def search_entities(
    db: Database,
    query: str | None = None,
    entity_type: str | None = None,
    ids: list[str] | None = None,
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[EntityRecord], int]:
    """Search entities by name or alias, filter by type, or fetch an ID list.

    Name and alias matching is case-insensitive substring matching; aliases
    are stored as a JSON array so the raw text is matched.

    Returns:
        (page of entities ordered by name, total matching count)
    """
    where: list[str] = []
    params: list[object] = []

    if ids:
        where.append(f"id IN ({', '.join('?' for _ in ids)})")
        params.extend(ids)
    if query:
        pattern = f"%{query.casefold()}%"
        where.append("(CASEFOLD(name) LIKE ? OR CASEFOLD(aliases) LIKE ?)")
        params.extend([pattern, pattern])
    if entity_type:
        where.append("type = ?")
        params.append(entity_type)

    clause = f"WHERE {' AND '.join(where)}" if where else ""

    with db.connect() as conn:
        total = conn.execute(f"SELECT COUNT(*) FROM kg_entities {clause}", params).fetchone()[0]
        rows = conn.execute(
            f"""
            SELECT * FROM kg_entities {clause}
            ORDER BY name COLLATE NOCASE
            LIMIT ? OFFSET ?
            """,
            (*params, limit, offset),
        ).fetchall()

    return [_row_to_entity(row) for row in rows], total


def insert_relation(
    db: Database,
    source_id: str,
    target_id: str,
    rel_type: str,
    weight: float = 1.0,
) -> RelationRecord:
    """Insert a relation between two existing entities.

    Raises:
        sqlite3.IntegrityError: On a duplicate (source, target, type) triple
            or an unknown endpoint
    """
    relation_id = new_id()
    with db.connect() as conn:
        conn.execute(
            """
            INSERT INTO kg_relations (id, source_id, target_id, rel_type, weight, created_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (relation_id, source_id, target_id, rel_type, weight, utc_now()),
        )
        row = conn.execute("SELECT * FROM kg_relations WHERE id = ?", (relation_id,)).fetchone()

    logger.debug("kg_relations.inserted", relation_id=relation_id, rel_type=rel_type)
    return _row_to_relation(row)


def relation_exists(db: Database, source_id: str, target_id: str, rel_type: str) -> bool:
    with db.connect() as conn:
        row = conn.execute(
            """
            SELECT 1 FROM kg_relations
            WHERE source_id = ? AND target_id = ? AND rel_type = ?
            """,
            (source_id, target_id, rel_type),
        ).fetchone()
    return row is not None


def list_relations(
    db: Database,
    source_id: str | None = None,
    target_id: str | None = None,
    limit: int = 200,
) -> list[RelationRecord]:
    where: list[str] = []
    params: list[object] = []
    if source_id:
        where.append("source_id = ?")
        params.append(source_id)
    if target_id:
        where.append("target_id = ?")
        params.append(target_id)
    clause = f"WHERE {' AND '.join(where)}" if where else ""

    with db.connect() as conn:
        rows = conn.execute(
            f"SELECT * FROM kg_relations {clause} ORDER BY weight DESC LIMIT ?",
            (*params, limit),
        ).fetchall()

    return [_row_to_relation(row) for row in rows]


def get_graph(db: Database, limit: int = 100, min_weight: float = 0.0) -> tuple[list[EntityRecord], list[RelationRecord]]:
    """Entities plus the relations among them with weight >= min_weight.

    Entities are picked by connectivity (most related first).
    """
    with db.connect() as conn:
        entity_rows = conn.execute(
            """
            SELECT e.*, (
                SELECT COUNT(*) FROM kg_relations r
                WHERE r.source_id = e.id OR r.target_id = e.id
            ) AS degree
            FROM kg_entities e
            ORDER BY degree DESC, e.name COLLATE NOCASE
            LIMIT ?
            """,
            (limit,),
        ).fetchall()

        entity_ids = [row["id"] for row in entity_rows]
        relation_rows: list[sqlite3.Row] = []
        if entity_ids:
            placeholders = ", ".join("?" for _ in entity_ids)
            relation_rows = conn.execute(
                f"""
                SELECT * FROM kg_relations
                WHERE weight >= ?
                  AND source_id IN ({placeholders})
                  AND target_id IN ({placeholders})
                ORDER BY weight DESC
                """,
                (min_weight, *entity_ids, *entity_ids),
            ).fetchall()

    return [_row_to_entity(row) for row in entity_rows], [_row_to_relation(row) for row in relation_rows]


def _row_to_entity(row: sqlite3.Row) -> EntityRecord:
    return EntityRecord(
        id=row["id"],
        name=row["name"],
        type=row["type"],
        description=row["description"],
        aliases=json.loads(row["aliases"]) if row["aliases"] else [],
        created_at=row["created_at"],
    )


def _row_to_relation(row: sqlite3.Row) -> RelationRecord:
    return RelationRecord(
        id=row["id"],
        source_id=row["source_id"],
        target_id=row["target_id"],
        rel_type=row["rel_type"],
        weight=row["weight"],
        created_at=row["created_at"],
    )
