"""Append-only ledger of item relocations.

``record_movement`` is the only writer and it only ever inserts. Rows keep a
snapshot of the names they pointed at, so history stays readable after an
item, location or member is deleted (their ids are nulled by the database).
"""

from __future__ import annotations

from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..errors import NotFoundError
from .spaces import require_space


def record_movement(
    db: Session,
    *,
    item: models.Item,
    from_location: models.Location | None,
    to_location: models.Location,
    moved_by: models.Member,
    notes: str | None = None,
) -> models.MovementHistory:
    entry = models.MovementHistory(
        space_id=item.space_id,
        item_id=item.id,
        item_name=item.name,
        from_location_id=from_location.id if from_location else None,
        from_location_name=from_location.name if from_location else None,
        to_location_id=to_location.id,
        to_location_name=to_location.name,
        moved_by_id=moved_by.id,
        moved_by_name=moved_by.name,
        notes=notes,
        moved_at=models.utcnow(),
    )
    db.add(entry)
    db.flush()
    return entry


def _ref(ref_id: UUID | None, live, snapshot_name: str | None) -> schemas.EntityRef | None:
    if ref_id is None:
        if snapshot_name is None:
            return None
        return schemas.EntityRef(name=snapshot_name, deleted=True)
    name = live.name if live is not None else snapshot_name
    return schemas.EntityRef(id=ref_id, name=name)


def movement_out(entry: models.MovementHistory) -> schemas.MovementOut:
    return schemas.MovementOut(
        id=entry.id,
        item=_ref(entry.item_id, entry.item, entry.item_name) or schemas.EntityRef(deleted=True),
        from_location=_ref(entry.from_location_id, entry.from_location, entry.from_location_name),
        to_location=_ref(entry.to_location_id, entry.to_location, entry.to_location_name)
        or schemas.EntityRef(deleted=True),
        moved_by=_ref(entry.moved_by_id, entry.moved_by, entry.moved_by_name)
        or schemas.EntityRef(deleted=True),
        notes=entry.notes,
        moved_at=entry.moved_at,
    )


def _page(query, *, limit: int, offset: int) -> schemas.Page[schemas.MovementOut]:
    total = query.count()
    rows = (
        query.options(
            joinedload(models.MovementHistory.item),
            joinedload(models.MovementHistory.from_location),
            joinedload(models.MovementHistory.to_location),
            joinedload(models.MovementHistory.moved_by),
        )
        .order_by(models.MovementHistory.moved_at.desc(), models.MovementHistory.id.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return schemas.Page[schemas.MovementOut](
        rows=[movement_out(r) for r in rows], total=total, limit=limit, offset=offset
    )


def item_history(
    db: Session, space_id: UUID, item_id: UUID, *, limit: int, offset: int
) -> schemas.Page[schemas.MovementOut]:
    """Movements of one item, newest first."""
    item = (
        db.query(models.Item.id)
        .filter(models.Item.id == item_id, models.Item.space_id == space_id)
        .first()
    )
    if item is None:
        raise NotFoundError("Item not found", code="ITEM_NOT_FOUND")
    query = db.query(models.MovementHistory).filter(models.MovementHistory.item_id == item_id)
    return _page(query, limit=limit, offset=offset)


def space_history(
    db: Session,
    space_id: UUID,
    *,
    location_id: UUID | None = None,
    member_id: UUID | None = None,
    limit: int,
    offset: int,
) -> schemas.Page[schemas.MovementOut]:
    """Movements across a space; ``location_id`` matches either endpoint."""
    require_space(db, space_id)
    query = db.query(models.MovementHistory).filter(models.MovementHistory.space_id == space_id)
    if location_id is not None:
        query = query.filter(
            sa.or_(
                models.MovementHistory.from_location_id == location_id,
                models.MovementHistory.to_location_id == location_id,
            )
        )
    if member_id is not None:
        query = query.filter(models.MovementHistory.moved_by_id == member_id)
    return _page(query, limit=limit, offset=offset)
