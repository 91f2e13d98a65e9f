from __future__ import annotations

import logging
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import DuplicateEntryError, NotFoundError
from . import members
from .spaces import require_space

logger = logging.getLogger(__name__)


def _tag_not_found() -> NotFoundError:
    return NotFoundError("Tag not found", code="TAG_NOT_FOUND")


def _scoped_tag(db: Session, space_id: UUID, tag_id: UUID) -> models.Tag | None:
    return (
        db.query(models.Tag)
        .filter(models.Tag.id == tag_id, models.Tag.space_id == space_id)
        .first()
    )


def _scoped_item(db: Session, space_id: UUID, item_id: UUID) -> models.Item:
    item = (
        db.query(models.Item)
        .filter(models.Item.id == item_id, models.Item.space_id == space_id)
        .first()
    )
    if item is None:
        raise NotFoundError("Item not found", code="ITEM_NOT_FOUND")
    return item


def create_tag(db: Session, space_id: UUID, payload: schemas.TagCreate) -> schemas.TagOut:
    require_space(db, space_id)
    members.require_membership(db, space_id, payload.created_by_id, field="created_by_id")
    clash = (
        db.query(models.Tag.id)
        .filter(models.Tag.space_id == space_id, models.Tag.name == payload.name)
        .first()
    )
    if clash is not None:
        raise DuplicateEntryError("A tag with this name already exists in this space", field="name")
    tag = models.Tag(
        name=payload.name,
        color=payload.color,
        space_id=space_id,
        created_by_id=payload.created_by_id,
    )
    db.add(tag)
    db.commit()
    db.refresh(tag)
    return schemas.TagOut.model_validate(tag)


def list_tags(db: Session, space_id: UUID) -> list[schemas.TagOut]:
    """Tags of a space with the number of items carrying each."""
    require_space(db, space_id)
    item_count = sa.func.count(models.ItemTag.item_id).label("item_count")
    rows = (
        db.query(models.Tag, item_count)
        .outerjoin(models.ItemTag, models.ItemTag.tag_id == models.Tag.id)
        .filter(models.Tag.space_id == space_id)
        .group_by(models.Tag.id)
        .order_by(models.Tag.created_at.desc())
        .all()
    )
    out = []
    for tag, count in rows:
        entry = schemas.TagOut.model_validate(tag)
        entry.item_count = count
        out.append(entry)
    return out


def delete_tag(db: Session, space_id: UUID, tag_id: UUID) -> None:
    tag = _scoped_tag(db, space_id, tag_id)
    if tag is None:
        raise _tag_not_found()
    db.delete(tag)
    db.commit()
    logger.info("Deleted tag %s from space %s", tag_id, space_id)


def assign_tag(
    db: Session, space_id: UUID, item_id: UUID, payload: schemas.TagAssign
) -> models.ItemTag:
    item = _scoped_item(db, space_id, item_id)
    tag = _scoped_tag(db, space_id, payload.tag_id)
    if tag is None:
        raise _tag_not_found()
    if db.get(models.ItemTag, {"item_id": item.id, "tag_id": tag.id}) is not None:
        raise DuplicateEntryError("Tag is already assigned to this item", field="tag_id")
    link = models.ItemTag(item_id=item.id, tag_id=tag.id)
    db.add(link)
    db.commit()
    db.refresh(link)
    return link


def unassign_tag(db: Session, space_id: UUID, item_id: UUID, tag_id: UUID) -> None:
    item = _scoped_item(db, space_id, item_id)
    link = db.get(models.ItemTag, {"item_id": item.id, "tag_id": tag_id})
    if link is None:
        raise NotFoundError("Tag is not assigned to this item", code="ITEM_TAG_NOT_FOUND")
    db.delete(link)
    db.commit()
