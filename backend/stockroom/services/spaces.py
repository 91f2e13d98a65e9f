from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..database import transaction
from ..errors import NotFoundError

logger = logging.getLogger(__name__)


def require_space(db: Session, space_id: UUID) -> models.Space:
    space = (
        db.query(models.Space)
        .options(joinedload(models.Space.owner))
        .filter(models.Space.id == space_id)
        .first()
    )
    if space is None:
        raise NotFoundError("Space not found", code="SPACE_NOT_FOUND")
    return space


def create_space(db: Session, payload: schemas.SpaceCreate) -> models.Space:
    """Create a space and its owner's ADMIN membership as one unit."""

    owner = db.get(models.Member, payload.owner_id)
    if owner is None:
        raise NotFoundError("Owner member not found", code="OWNER_NOT_FOUND", field="owner_id")
    with transaction(db):
        space = models.Space(
            name=payload.name,
            description=payload.description,
            owner_id=owner.id,
        )
        db.add(space)
        db.flush()
        db.add(models.SpaceMembership(space_id=space.id, member_id=owner.id, role="ADMIN"))
    db.refresh(space)
    logger.info("Created space %s owned by %s", space.id, owner.id)
    return space


def list_spaces(db: Session, *, limit: int, offset: int) -> schemas.Page[schemas.SpaceOut]:
    query = db.query(models.Space)
    total = query.count()
    rows = (
        query.options(joinedload(models.Space.owner))
        .order_by(models.Space.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
    return schemas.Page[schemas.SpaceOut](
        rows=[schemas.SpaceOut.model_validate(s) for s in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


def update_space(db: Session, space_id: UUID, payload: schemas.SpaceUpdate) -> models.Space:
    space = require_space(db, space_id)
    for key, value in payload.model_dump(exclude_unset=True).items():
        if key == "name" and value is None:
            continue
        setattr(space, key, value)
    db.commit()
    db.refresh(space)
    return space


def delete_space(db: Session, space_id: UUID) -> None:
    # memberships, locations, items, tags and tag assignments go with the
    # space; movement rows stay with their space reference nulled
    space = require_space(db, space_id)
    db.delete(space)
    db.commit()
    logger.info("Deleted space %s", space_id)
