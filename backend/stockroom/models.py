import uuid
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy import (
    Column,
    String,
    DateTime,
    ForeignKey,
    Integer,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from .database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ExternalReferenceMixin:
    """Exposes reference_type/reference_id as one ``{kind, value}`` value."""

    @property
    def reference(self) -> dict | None:
        if self.reference_id is None:
            return None
        return {"kind": self.reference_type or "MANUAL", "value": self.reference_id}

    @reference.setter
    def reference(self, value: dict | None) -> None:
        if value is None:
            self.reference_type = None
            self.reference_id = None
        else:
            self.reference_type = value["kind"]
            self.reference_id = value["value"]


class Member(Base):
    __tablename__ = "members"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    email = Column(String(320), unique=True, nullable=False)
    password_hash = Column(String, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    memberships = relationship(
        "SpaceMembership",
        back_populates="member",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Space(Base):
    __tablename__ = "spaces"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    description = Column(Text)
    owner_id = Column(UUID(as_uuid=True), ForeignKey("members.id"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    owner = relationship("Member")
    memberships = relationship(
        "SpaceMembership",
        back_populates="space",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class SpaceMembership(Base):
    __tablename__ = "space_memberships"
    member_id = Column(
        UUID(as_uuid=True), ForeignKey("members.id", ondelete="CASCADE"), primary_key=True
    )
    space_id = Column(
        UUID(as_uuid=True), ForeignKey("spaces.id", ondelete="CASCADE"), primary_key=True
    )
    role = Column(String(16), default="MEMBER", nullable=False)
    joined_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    member = relationship("Member", back_populates="memberships")
    space = relationship("Space", back_populates="memberships")


class Location(ExternalReferenceMixin, Base):
    __tablename__ = "locations"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    space_id = Column(
        UUID(as_uuid=True), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # deletes of non-empty locations are refused before they reach the database;
    # the cascade only fires when the whole space goes
    parent_location_id = Column(
        UUID(as_uuid=True), ForeignKey("locations.id", ondelete="CASCADE"), index=True
    )
    location_type = Column(String(16), default="OTHER", nullable=False)
    reference_type = Column(String(16))
    reference_id = Column(String(255))
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("members.id", ondelete="SET NULL"))
    updated_by_id = Column(UUID(as_uuid=True), ForeignKey("members.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    parent = relationship("Location", remote_side=[id])
    created_by = relationship("Member", foreign_keys=[created_by_id])

    __table_args__ = (
        sa.UniqueConstraint("space_id", "reference_id", name="uq_location_reference"),
    )


class Item(ExternalReferenceMixin, Base):
    __tablename__ = "items"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(255), nullable=False)
    space_id = Column(
        UUID(as_uuid=True), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    description = Column(Text)
    quantity = Column(Integer, default=1, nullable=False)
    image_url = Column(String)
    location_id = Column(
        UUID(as_uuid=True), ForeignKey("locations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    reference_type = Column(String(16))
    reference_id = Column(String(255))
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("members.id", ondelete="SET NULL"))
    updated_by_id = Column(UUID(as_uuid=True), ForeignKey("members.id", ondelete="SET NULL"))
    last_moved_by_id = Column(UUID(as_uuid=True), ForeignKey("members.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False)

    location = relationship("Location")
    created_by = relationship("Member", foreign_keys=[created_by_id])
    item_tags = relationship(
        "ItemTag",
        back_populates="item",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        sa.CheckConstraint("quantity >= 0", name="ck_item_quantity_non_negative"),
        sa.UniqueConstraint("space_id", "reference_id", name="uq_item_reference"),
    )

    @property
    def tags(self) -> list["Tag"]:
        return [it.tag for it in self.item_tags]


class Tag(Base):
    __tablename__ = "tags"
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    color = Column(String(7))
    space_id = Column(
        UUID(as_uuid=True), ForeignKey("spaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_by_id = Column(UUID(as_uuid=True), ForeignKey("members.id", ondelete="SET NULL"))
    created_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    item_tags = relationship(
        "ItemTag",
        back_populates="tag",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        sa.UniqueConstraint("space_id", "name", name="uq_tag_space_name"),
    )


class ItemTag(Base):
    __tablename__ = "item_tags"
    item_id = Column(
        UUID(as_uuid=True), ForeignKey("items.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id = Column(
        UUID(as_uuid=True), ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )
    assigned_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    item = relationship("Item", back_populates="item_tags")
    tag = relationship("Tag", back_populates="item_tags")


class MovementHistory(Base):
    """One relocation of an item. Rows are written once and never changed.

    Every reference is nulled rather than cascaded when its target is
    deleted, and the *_name columns keep what the row pointed at.
    """

    __tablename__ = "movement_history"
    id = Column(Integer, primary_key=True, autoincrement=True)
    space_id = Column(
        UUID(as_uuid=True), ForeignKey("spaces.id", ondelete="SET NULL"), index=True
    )
    item_id = Column(
        UUID(as_uuid=True), ForeignKey("items.id", ondelete="SET NULL"), index=True
    )
    from_location_id = Column(
        UUID(as_uuid=True), ForeignKey("locations.id", ondelete="SET NULL"), index=True
    )
    to_location_id = Column(
        UUID(as_uuid=True), ForeignKey("locations.id", ondelete="SET NULL"), index=True
    )
    moved_by_id = Column(
        UUID(as_uuid=True), ForeignKey("members.id", ondelete="SET NULL"), index=True
    )
    notes = Column(Text)
    moved_at = Column(DateTime(timezone=True), default=utcnow, nullable=False)

    item_name = Column(String(255))
    from_location_name = Column(String(255))
    to_location_name = Column(String(255))
    moved_by_name = Column(String(255))

    item = relationship("Item")
    from_location = relationship("Location", foreign_keys=[from_location_id])
    to_location = relationship("Location", foreign_keys=[to_location_id])
    moved_by = relationship("Member")
