"""Item catalog and the item move transaction."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload, selectinload

from .. import models, schemas
from ..database import transaction
from ..errors import NotFoundError
from . import members, movements
from .locations import (
    PathResolver,
    ensure_reference_free,
    require_location_reference,
)
from .spaces import require_space

logger = logging.getLogger(__name__)


def _item_not_found(message: str = "Item not found") -> NotFoundError:
    return NotFoundError(message, code="ITEM_NOT_FOUND")


def _escape_like(text: str) -> str:
    return text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def get_scoped_item(
    db: Session, space_id: UUID, item_id: UUID, *, for_update: bool = False
) -> models.Item:
    query = db.query(models.Item).filter(
        models.Item.id == item_id, models.Item.space_id == space_id
    )
    if for_update:
        query = query.with_for_update()
    item = query.first()
    if item is None:
        raise _item_not_found()
    return item


def item_out(item: models.Item, resolver: PathResolver) -> schemas.ItemOut:
    out = schemas.ItemOut.model_validate(item)
    if out.location is not None:
        out.location.path = resolver.resolve(item.location_id)
    return out


def _with_relations(query):
    return query.options(
        joinedload(models.Item.location),
        selectinload(models.Item.item_tags).joinedload(models.ItemTag.tag),
    )


def create_item(
    db: Session,
    space_id: UUID,
    payload: schemas.ItemCreate,
    *,
    resolver: PathResolver | None = None,
) -> schemas.ItemOut:
    require_space(db, space_id)
    members.require_membership(db, space_id, payload.created_by_id, field="created_by_id")
    location = require_location_reference(db, space_id, payload.location_id, field="location_id")
    ensure_reference_free(db, models.Item, space_id, payload.reference)

    item = models.Item(
        name=payload.name,
        space_id=space_id,
        description=payload.description,
        quantity=payload.quantity,
        image_url=str(payload.image_url) if payload.image_url else None,
        location_id=location.id,
        created_by_id=payload.created_by_id,
    )
    item.reference = payload.reference.model_dump() if payload.reference else None
    db.add(item)
    db.commit()
    db.refresh(item)
    return item_out(item, resolver or PathResolver(db))


def list_items(
    db: Session,
    space_id: UUID,
    *,
    location_id: UUID | None = None,
    tag_id: UUID | None = None,
    search: str | None = None,
    limit: int,
    offset: int,
    resolver: PathResolver | None = None,
) -> schemas.Page[schemas.ItemOut]:
    resolver = resolver or PathResolver(db)
    require_space(db, space_id)
    query = db.query(models.Item).filter(models.Item.space_id == space_id)
    if location_id is not None:
        query = query.filter(models.Item.location_id == location_id)
    if tag_id is not None:
        query = query.filter(models.Item.item_tags.any(models.ItemTag.tag_id == tag_id))
    if search:
        query = query.filter(models.Item.name.ilike(f"%{_escape_like(search)}%", escape="\\"))

    total = query.count()
    rows = (
        _with_relations(query)
        .order_by(models.Item.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    if rows:
        resolver.prime(space_id)
    return schemas.Page[schemas.ItemOut](
        rows=[item_out(item, resolver) for item in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


def get_item(
    db: Session,
    space_id: UUID,
    item_id: UUID,
    *,
    resolver: PathResolver | None = None,
) -> schemas.ItemOut:
    item = (
        _with_relations(db.query(models.Item))
        .filter(models.Item.id == item_id, models.Item.space_id == space_id)
        .first()
    )
    if item is None:
        raise _item_not_found()
    return item_out(item, resolver or PathResolver(db))


def find_item_by_identifier(
    db: Session,
    space_id: UUID,
    identifier: str,
    *,
    resolver: PathResolver | None = None,
) -> schemas.ItemOut:
    item = (
        _with_relations(db.query(models.Item))
        .filter(models.Item.space_id == space_id, models.Item.reference_id == identifier)
        .order_by(models.Item.created_at.asc())
        .first()
    )
    if item is None:
        raise _item_not_found("Item not found with this identifier")
    return item_out(item, resolver or PathResolver(db))


def update_item(
    db: Session,
    space_id: UUID,
    item_id: UUID,
    payload: schemas.ItemUpdate,
    *,
    resolver: PathResolver | None = None,
) -> schemas.ItemOut:
    item = get_scoped_item(db, space_id, item_id)
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("updated_by_id") is not None:
        members.require_membership(db, space_id, changes["updated_by_id"], field="updated_by_id")
        item.updated_by_id = changes["updated_by_id"]
    if "reference" in changes:
        ensure_reference_free(db, models.Item, space_id, payload.reference, exclude_id=item.id)
        item.reference = changes["reference"]
    if "image_url" in changes:
        item.image_url = str(payload.image_url) if payload.image_url else None
    if "description" in changes:
        item.description = changes["description"]
    for key in ("name", "quantity"):
        if changes.get(key) is not None:
            setattr(item, key, changes[key])

    db.commit()
    db.refresh(item)
    return item_out(item, resolver or PathResolver(db))


def move_item(
    db: Session,
    space_id: UUID,
    item_id: UUID,
    payload: schemas.ItemMove,
    *,
    resolver: PathResolver | None = None,
) -> schemas.ItemOut:
    """Relocate an item and append the ledger row in one transaction.

    The location change is flushed before the ledger insert; if anything
    after that fails, both are rolled back together.
    """
    with transaction(db):
        item = get_scoped_item(db, space_id, item_id, for_update=True)
        target = require_location_reference(
            db, space_id, payload.to_location_id, field="to_location_id"
        )
        mover = members.require_membership(
            db, space_id, payload.moved_by_id, field="moved_by_id"
        ).member
        origin = item.location

        item.location_id = target.id
        item.last_moved_by_id = mover.id
        db.flush()
        movements.record_movement(
            db,
            item=item,
            from_location=origin,
            to_location=target,
            moved_by=mover,
            notes=payload.notes,
        )
    logger.info(
        "Moved item %s from %s to %s (by %s)",
        item_id,
        origin.id if origin else None,
        target.id,
        mover.id,
    )
    return get_item(db, space_id, item_id, resolver=resolver)


def delete_item(db: Session, space_id: UUID, item_id: UUID) -> None:
    # tag assignments cascade; movement rows keep their snapshot
    item = get_scoped_item(db, space_id, item_id)
    db.delete(item)
    db.commit()
    logger.info("Deleted item %s from space %s", item_id, space_id)
