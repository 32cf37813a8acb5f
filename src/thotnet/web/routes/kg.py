"""Knowledge graph endpoints."""

from __future__ import annotations

import sqlite3
from dataclasses import asdict
from typing import Any

import structlog
from fastapi import APIRouter, Depends, Query, status

from thotnet.db import kg_repository
from thotnet.db.database import Database
from thotnet.errors import Conflict, NotFound
from thotnet.web.auth import current_user
from thotnet.web.dependencies import get_db
from thotnet.web.schemas import EntityCreate, Envelope, PagedEnvelope, Pagination, RelationCreate

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/kg", tags=["knowledge-graph"])


def _split_ids(ids: str | None) -> list[str]:
    if not ids:
        return []
    return [part.strip() for part in ids.split(",") if part.strip()]


# =============================================================================
# ENTITIES
# =============================================================================


@router.get("/entities", response_model=PagedEnvelope[list[dict[str, Any]]])
def search_entities(
    q: str | None = Query(default=None, max_length=200),
    entity_type: str | None = Query(default=None, alias="type"),
    ids: str | None = None,
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Database = Depends(get_db),
) -> PagedEnvelope[list[dict[str, Any]]]:
    """Search by name or alias, filter by type, or fetch a comma-separated ID list."""
    entities, total = kg_repository.search_entities(
        db,
        query=q.strip() if q else None,
        entity_type=entity_type,
        ids=_split_ids(ids),
        limit=limit,
        offset=offset,
    )
    return PagedEnvelope(
        data=[asdict(entity) for entity in entities],
        pagination=Pagination(total=total, limit=limit, offset=offset, has_more=offset + limit < total),
    )


@router.get("/entities/{entity_id}", response_model=Envelope[dict[str, Any]])
def get_entity(entity_id: str, db: Database = Depends(get_db)) -> Envelope[dict[str, Any]]:
    entity = kg_repository.get_entity(db, entity_id)
    if entity is None:
        raise NotFound(f"Entity not found: {entity_id}")
    return Envelope(data=asdict(entity))


@router.post("/entities", response_model=Envelope[dict[str, Any]], status_code=status.HTTP_201_CREATED)
def create_entity(
    body: EntityCreate,
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    aliases = [alias.strip() for alias in body.aliases if alias.strip()]
    entity = kg_repository.insert_entity(
        db, body.name.strip(), body.type.strip().lower(), body.description, aliases
    )
    logger.info("kg_entity_created", entity_id=entity.id, type=entity.type, user_id=user_id)
    return Envelope(data=asdict(entity))


# =============================================================================
# RELATIONS AND GRAPH
# =============================================================================


@router.get("/relations", response_model=Envelope[list[dict[str, Any]]])
def list_relations(
    source_id: str | None = None,
    target_id: str | None = None,
    limit: int = Query(default=200, ge=1, le=1000),
    db: Database = Depends(get_db),
) -> Envelope[list[dict[str, Any]]]:
    relations = kg_repository.list_relations(db, source_id=source_id, target_id=target_id, limit=limit)
    return Envelope(data=[asdict(relation) for relation in relations])


@router.post("/relations", response_model=Envelope[dict[str, Any]], status_code=status.HTTP_201_CREATED)
def create_relation(
    body: RelationCreate,
    db: Database = Depends(get_db),
    user_id: str = Depends(current_user),
) -> Envelope[dict[str, Any]]:
    """Link two existing entities.

    Unknown endpoints are 404, an existing (source, target, type) triple is 409.
    """
    for entity_id in (body.source_id, body.target_id):
        if kg_repository.get_entity(db, entity_id) is None:
            raise NotFound(f"Entity not found: {entity_id}")

    rel_type = body.rel_type.strip()
    if kg_repository.relation_exists(db, body.source_id, body.target_id, rel_type):
        raise Conflict("Relation already exists")

    try:
        relation = kg_repository.insert_relation(db, body.source_id, body.target_id, rel_type, body.weight)
    except sqlite3.IntegrityError as exc:
        raise Conflict("Relation already exists") from exc

    logger.info("kg_relation_created", relation_id=relation.id, rel_type=rel_type, user_id=user_id)
    return Envelope(data=asdict(relation))


@router.get("/graph", response_model=Envelope[dict[str, Any]])
def get_graph(
    limit: int = Query(default=100, ge=1, le=500),
    min_weight: float = Query(default=0.0, ge=0, alias="minWeight"),
    db: Database = Depends(get_db),
) -> Envelope[dict[str, Any]]:
    """Most connected entities and the relations among them."""
    entities, relations = kg_repository.get_graph(db, limit=limit, min_weight=min_weight)
    return Envelope(
        data={
            "entities": [asdict(entity) for entity in entities],
            "relations": [asdict(relation) for relation in relations],
        }
    )
