"""Member accounts and space memberships."""

from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..errors import ConflictError, DuplicateEntryError, InvalidReferenceError, NotFoundError
from ..security import get_password_hash

logger = logging.getLogger(__name__)


def _member_not_found() -> NotFoundError:
    return NotFoundError("Member not found", code="MEMBER_NOT_FOUND")


def _space_not_found() -> NotFoundError:
    return NotFoundError("Space not found", code="SPACE_NOT_FOUND")


def create_member(db: Session, payload: schemas.MemberCreate) -> models.Member:
    email = payload.email.lower()
    existing = db.query(models.Member).filter(models.Member.email == email).first()
    if existing:
        raise DuplicateEntryError(
            "A member with this email already exists",
            code="EMAIL_ALREADY_EXISTS",
            field="email",
        )
    member = models.Member(
        name=payload.name,
        email=email,
        password_hash=get_password_hash(payload.password),
    )
    db.add(member)
    db.commit()
    db.refresh(member)
    logger.info("Registered member %s", member.id)
    return member


def list_members(db: Session, *, limit: int, offset: int) -> schemas.Page[schemas.MemberOut]:
    query = db.query(models.Member)
    total = query.count()
    rows = query.order_by(models.Member.created_at.desc()).offset(offset).limit(limit).all()
    return schemas.Page[schemas.MemberOut](
        rows=[schemas.MemberOut.model_validate(m) for m in rows],
        total=total,
        limit=limit,
        offset=offset,
    )


def get_member(db: Session, member_id: UUID) -> models.Member:
    member = (
        db.query(models.Member)
        .options(joinedload(models.Member.memberships).joinedload(models.SpaceMembership.space))
        .filter(models.Member.id == member_id)
        .first()
    )
    if not member:
        raise _member_not_found()
    return member


def update_member(db: Session, member_id: UUID, payload: schemas.MemberUpdate) -> models.Member:
    member = db.get(models.Member, member_id)
    if not member:
        raise _member_not_found()
    for key, value in payload.model_dump(exclude_unset=True).items():
        if value is not None:
            setattr(member, key, value)
    db.commit()
    db.refresh(member)
    return member


def _get_membership(db: Session, space_id: UUID, member_id: UUID) -> models.SpaceMembership | None:
    return db.get(models.SpaceMembership, {"member_id": member_id, "space_id": space_id})


def require_membership(
    db: Session, space_id: UUID, member_id: UUID, *, field: str
) -> models.SpaceMembership:
    """Return the membership backing an actor id supplied in a request body.

    Actors that do not belong to the space are reported as a bad reference on
    ``field`` rather than as a missing record.
    """
    membership = _get_membership(db, space_id, member_id)
    if membership is None:
        raise InvalidReferenceError("Member is not part of this space", field=field)
    return membership


def add_space_member(
    db: Session, space_id: UUID, payload: schemas.SpaceMemberAdd
) -> models.SpaceMembership:
    if db.get(models.Space, space_id) is None:
        raise _space_not_found()
    if db.get(models.Member, payload.member_id) is None:
        raise _member_not_found()
    if _get_membership(db, space_id, payload.member_id) is not None:
        raise DuplicateEntryError(
            "Member is already part of this space", code="ALREADY_MEMBER", field="member_id"
        )
    membership = models.SpaceMembership(
        space_id=space_id, member_id=payload.member_id, role=payload.role
    )
    db.add(membership)
    db.commit()
    db.refresh(membership)
    logger.info("Added member %s to space %s as %s", payload.member_id, space_id, payload.role)
    return membership


def list_space_members(db: Session, space_id: UUID) -> list[models.SpaceMembership]:
    if db.get(models.Space, space_id) is None:
        raise _space_not_found()
    return (
        db.query(models.SpaceMembership)
        .options(joinedload(models.SpaceMembership.member))
        .filter(models.SpaceMembership.space_id == space_id)
        .order_by(models.SpaceMembership.joined_at.desc())
        .all()
    )


def get_space_member(db: Session, space_id: UUID, member_id: UUID) -> models.SpaceMembership:
    if db.get(models.Space, space_id) is None:
        raise _space_not_found()
    membership = (
        db.query(models.SpaceMembership)
        .options(joinedload(models.SpaceMembership.member))
        .filter(
            models.SpaceMembership.space_id == space_id,
            models.SpaceMembership.member_id == member_id,
        )
        .first()
    )
    if membership is None:
        raise NotFoundError("Member is not part of this space", code="MEMBER_NOT_FOUND")
    return membership


def update_space_member_role(
    db: Session, space_id: UUID, member_id: UUID, payload: schemas.SpaceMemberUpdate
) -> models.SpaceMembership:
    space = db.get(models.Space, space_id)
    if space is None:
        raise _space_not_found()
    membership = _get_membership(db, space_id, member_id)
    if membership is None:
        raise NotFoundError("Member is not part of this space", code="MEMBER_NOT_FOUND")
    if space.owner_id == member_id and payload.role != "ADMIN":
        raise ConflictError("Space owner must remain an admin", code="CANNOT_DEMOTE_OWNER")
    membership.role = payload.role
    db.commit()
    db.refresh(membership)
    return membership


def remove_space_member(db: Session, space_id: UUID, member_id: UUID) -> None:
    space = db.get(models.Space, space_id)
    if space is None:
        raise _space_not_found()
    if space.owner_id == member_id:
        raise ConflictError("Cannot remove space owner from space", code="CANNOT_REMOVE_OWNER")
    membership = _get_membership(db, space_id, member_id)
    if membership is None:
        raise NotFoundError("Member is not part of this space", code="MEMBER_NOT_FOUND")
    db.delete(membership)
    db.commit()
    logger.info("Removed member %s from space %s", member_id, space_id)
