"""Space-scoped location hierarchy.

Locations form a tree through ``parent_location_id``. The tree is kept
acyclic on write (re-parenting under a descendant is refused) and every read
walk is bounded, so data that slipped past the write checks fails with
``CorruptHierarchyError`` instead of looping.
"""

from __future__ import annotations

import logging
from typing import Iterator
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..errors import (
    ConflictError,
    CorruptHierarchyError,
    DuplicateEntryError,
    InvalidReferenceError,
    NotFoundError,
)
from . import members
from .spaces import require_space

logger = logging.getLogger(__name__)

PATH_SEPARATOR = " / "
DEFAULT_MAX_DEPTH = 64


class PathResolver:
    """Walks parent pointers and caches every node it reads.

    One resolver is meant to live for a single request: ``prime`` loads a
    whole space in one query so that decorating a list of locations or items
    does not cost a query per ancestor.
    """

    def __init__(self, db: Session, *, max_depth: int = DEFAULT_MAX_DEPTH):
        self.db = db
        self.max_depth = max_depth
        self._nodes: dict[UUID, tuple[str, UUID | None]] = {}

    def prime(self, space_id: UUID) -> "PathResolver":
        rows = (
            self.db.query(
                models.Location.id,
                models.Location.name,
                models.Location.parent_location_id,
            )
            .filter(models.Location.space_id == space_id)
            .all()
        )
        for loc_id, name, parent_id in rows:
            self._nodes[loc_id] = (name, parent_id)
        return self

    def forget(self, location_id: UUID) -> None:
        self._nodes.pop(location_id, None)

    def _node(self, location_id: UUID) -> tuple[str, UUID | None] | None:
        node = self._nodes.get(location_id)
        if node is None:
            row = (
                self.db.query(models.Location.name, models.Location.parent_location_id)
                .filter(models.Location.id == location_id)
                .first()
            )
            if row is None:
                return None
            node = (row[0], row[1])
            self._nodes[location_id] = node
        return node

    def ancestry(self, location_id: UUID) -> Iterator[tuple[UUID, str]]:
        """Yield ``(id, name)`` from ``location_id`` up to its root.

        Stops quietly at a missing node; raises ``CorruptHierarchyError`` on a
        revisited node or after ``max_depth`` nodes.
        """
        seen: set[UUID] = set()
        current: UUID | None = location_id
        while current is not None:
            if current in seen or len(seen) >= self.max_depth:
                logger.warning(
                    "Location hierarchy above %s is cyclic or deeper than %d",
                    location_id,
                    self.max_depth,
                )
                raise CorruptHierarchyError(details={"location_id": str(location_id)})
            seen.add(current)
            node = self._node(current)
            if node is None:
                return
            name, parent_id = node
            yield current, name
            current = parent_id

    def resolve(self, location_id: UUID) -> str:
        names = [name for _, name in self.ancestry(location_id)]
        names.reverse()
        return PATH_SEPARATOR.join(names)


def resolve_path(db: Session, location_id: UUID, *, max_depth: int = DEFAULT_MAX_DEPTH) -> str:
    """Return the root-to-leaf names of a location joined by ``" / "``."""
    return PathResolver(db, max_depth=max_depth).resolve(location_id)


def location_out(location: models.Location, resolver: PathResolver) -> schemas.LocationOut:
    out = schemas.LocationOut.model_validate(location)
    out.path = resolver.resolve(location.id)
    return out


def _location_not_found() -> NotFoundError:
    return NotFoundError("Location not found", code="LOCATION_NOT_FOUND")


def get_scoped_location(db: Session, space_id: UUID, location_id: UUID) -> models.Location | None:
    return (
        db.query(models.Location)
        .filter(models.Location.id == location_id, models.Location.space_id == space_id)
        .first()
    )


def require_location_reference(
    db: Session, space_id: UUID, location_id: UUID, *, field: str
) -> models.Location:
    location = get_scoped_location(db, space_id, location_id)
    if location is None:
        logger.warning("Rejected %s %s: not a location of space %s", field, location_id, space_id)
        raise InvalidReferenceError("Location not found in this space", field=field)
    return location


def ensure_reference_free(
    db: Session,
    model,
    space_id: UUID,
    reference: schemas.ExternalReference | None,
    *,
    exclude_id: UUID | None = None,
) -> None:
    if reference is None:
        return
    query = db.query(model.id).filter(
        model.space_id == space_id, model.reference_id == reference.value
    )
    if exclude_id is not None:
        query = query.filter(model.id != exclude_id)
    if query.first() is not None:
        raise DuplicateEntryError("Identifier already in use in this space", field="reference")


def _subtree_height(db: Session, space_id: UUID, location_id: UUID, limit: int) -> int:
    """Levels in the subtree rooted at ``location_id``, counting it; stops past ``limit``."""
    height = 0
    frontier = [location_id]
    while frontier and height <= limit:
        height += 1
        frontier = [
            row[0]
            for row in db.query(models.Location.id)
            .filter(
                models.Location.space_id == space_id,
                models.Location.parent_location_id.in_(frontier),
            )
            .all()
        ]
    return height


def _check_parent(
    db: Session,
    space_id: UUID,
    parent_id: UUID,
    resolver: PathResolver,
    *,
    location_id: UUID | None = None,
) -> models.Location:
    parent = require_location_reference(db, space_id, parent_id, field="parent_location_id")
    chain = [node_id for node_id, _ in resolver.ancestry(parent.id)]
    if location_id is not None and location_id in chain:
        logger.warning("Rejected re-parenting %s under %s: cycle", location_id, parent_id)
        raise ConflictError(
            "Parent location would create a cycle",
            code="LOCATION_CYCLE",
            field="parent_location_id",
        )
    height = 1
    if location_id is not None:
        height = _subtree_height(db, space_id, location_id, resolver.max_depth)
    if len(chain) + height > resolver.max_depth:
        raise ConflictError(
            f"Locations cannot be nested deeper than {resolver.max_depth} levels",
            code="LOCATION_TOO_DEEP",
            field="parent_location_id",
        )
    return parent


def create_location(
    db: Session,
    space_id: UUID,
    payload: schemas.LocationCreate,
    *,
    resolver: PathResolver | None = None,
) -> schemas.LocationOut:
    resolver = resolver or PathResolver(db)
    require_space(db, space_id)
    members.require_membership(db, space_id, payload.created_by_id, field="created_by_id")
    if payload.parent_location_id is not None:
        _check_parent(db, space_id, payload.parent_location_id, resolver)
    ensure_reference_free(db, models.Location, space_id, payload.reference)

    location = models.Location(
        name=payload.name,
        space_id=space_id,
        parent_location_id=payload.parent_location_id,
        location_type=payload.location_type,
        created_by_id=payload.created_by_id,
    )
    location.reference = payload.reference.model_dump() if payload.reference else None
    db.add(location)
    db.commit()
    db.refresh(location)
    return location_out(location, resolver)


def list_locations(
    db: Session,
    space_id: UUID,
    *,
    parent_location_id: UUID | None = None,
    location_type: str | None = None,
    resolver: PathResolver | None = None,
) -> list[schemas.LocationOut]:
    resolver = resolver or PathResolver(db)
    require_space(db, space_id)
    query = db.query(models.Location).filter(models.Location.space_id == space_id)
    if parent_location_id is not None:
        query = query.filter(models.Location.parent_location_id == parent_location_id)
    if location_type is not None:
        query = query.filter(models.Location.location_type == location_type)
    rows = query.order_by(models.Location.created_at.desc()).all()
    resolver.prime(space_id)
    return [location_out(loc, resolver) for loc in rows]


def get_location(
    db: Session,
    space_id: UUID,
    location_id: UUID,
    *,
    resolver: PathResolver | None = None,
) -> schemas.LocationOut:
    location = (
        db.query(models.Location)
        .options(joinedload(models.Location.created_by))
        .filter(models.Location.id == location_id, models.Location.space_id == space_id)
        .first()
    )
    if location is None:
        raise _location_not_found()
    return location_out(location, resolver or PathResolver(db))


def find_location_by_identifier(
    db: Session,
    space_id: UUID,
    identifier: str,
    *,
    resolver: PathResolver | None = None,
) -> schemas.LocationOut:
    location = (
        db.query(models.Location)
        .filter(
            models.Location.space_id == space_id,
            models.Location.reference_id == identifier,
        )
        .order_by(models.Location.created_at.asc())
        .first()
    )
    if location is None:
        raise NotFoundError(
            "Location not found with this identifier", code="LOCATION_NOT_FOUND"
        )
    return location_out(location, resolver or PathResolver(db))


def update_location(
    db: Session,
    space_id: UUID,
    location_id: UUID,
    payload: schemas.LocationUpdate,
    *,
    resolver: PathResolver | None = None,
) -> schemas.LocationOut:
    resolver = resolver or PathResolver(db)
    location = get_scoped_location(db, space_id, location_id)
    if location is None:
        raise _location_not_found()
    changes = payload.model_dump(exclude_unset=True)

    if changes.get("updated_by_id") is not None:
        members.require_membership(db, space_id, changes["updated_by_id"], field="updated_by_id")
        location.updated_by_id = changes["updated_by_id"]
    if "parent_location_id" in changes:
        parent_id = changes["parent_location_id"]
        if parent_id is not None:
            _check_parent(db, space_id, parent_id, resolver, location_id=location.id)
        location.parent_location_id = parent_id
        resolver.forget(location.id)
    if "reference" in changes:
        ensure_reference_free(
            db, models.Location, space_id, payload.reference, exclude_id=location.id
        )
        location.reference = changes["reference"]
    for key in ("name", "location_type"):
        if changes.get(key) is not None:
            setattr(location, key, changes[key])
            if key == "name":
                resolver.forget(location.id)

    db.commit()
    db.refresh(location)
    return location_out(location, resolver)


def delete_location(db: Session, space_id: UUID, location_id: UUID) -> None:
    location = get_scoped_location(db, space_id, location_id)
    if location is None:
        raise _location_not_found()
    has_children = db.query(
        sa.exists().where(models.Location.parent_location_id == location.id)
    ).scalar()
    has_items = db.query(sa.exists().where(models.Item.location_id == location.id)).scalar()
    if has_children or has_items:
        raise ConflictError(
            "Location still contains locations or items",
            code="LOCATION_NOT_EMPTY",
            details={"has_children": bool(has_children), "has_items": bool(has_items)},
        )
    db.delete(location)
    db.commit()
    logger.info("Deleted location %s from space %s", location_id, space_id)
