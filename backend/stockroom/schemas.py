from datetime import datetime
from typing import Any, Generic, List, Literal, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl, model_validator

T = TypeVar("T")

MembershipRole = Literal["ADMIN", "MEMBER", "VIEWER"]
LocationType = Literal["ROOT", "FLOOR", "ROOM", "CONTAINER", "OTHER"]
ReferenceKind = Literal["NFC", "QR_CODE", "BARCODE", "MANUAL"]

HEX_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


# ---------------------------------------------------------------------------
# Envelopes
# ---------------------------------------------------------------------------


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T


class PagedEnvelope(BaseModel, Generic[T]):
    success: bool = True
    data: List[T]
    pagination: Pagination


class Page(BaseModel, Generic[T]):
    """A slice of results plus the total count under the same filter."""

    rows: List[T]
    total: int
    limit: int
    offset: int

    def envelope(self) -> dict[str, Any]:
        return {
            "success": True,
            "data": self.rows,
            "pagination": {"total": self.total, "limit": self.limit, "offset": self.offset},
        }


def ok(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data}


# ---------------------------------------------------------------------------
# External identifiers
# ---------------------------------------------------------------------------


class ExternalReference(BaseModel):
    kind: ReferenceKind
    value: str = Field(min_length=1, max_length=255)
    model_config = ConfigDict(from_attributes=True)


_LEGACY_REFERENCE_FIELDS = {"nfc_tag": "NFC", "qr_code": "QR_CODE", "barcode": "BARCODE"}
_LEGACY_REFERENCE_ID_FIELDS = ("reference_id", "location_reference_id", "item_reference_id")


def fold_legacy_reference(data: Any) -> Any:
    """Rewrite older identifier payloads into the ``reference`` field.

    Two shapes are still sent by clients: one field per scanner type
    (``nfc_tag``/``qr_code``/``barcode``), and a ``*_reference_id`` plus
    ``reference_type`` pair. Both become ``{"kind": ..., "value": ...}``.
    """
    if not isinstance(data, dict):
        return data
    data = dict(data)

    per_type = {k: data.pop(k) for k in list(_LEGACY_REFERENCE_FIELDS) if k in data}
    ref_ids = {k: data.pop(k) for k in _LEGACY_REFERENCE_ID_FIELDS if k in data}
    ref_type = data.pop("reference_type", None)
    if not per_type and not ref_ids and ref_type is None:
        return data
    if "reference" in data:
        raise ValueError("reference cannot be combined with legacy identifier fields")
    if ref_type is not None and not ref_ids:
        raise ValueError("reference_type requires a reference_id")

    candidates = [(_LEGACY_REFERENCE_FIELDS[k], v) for k, v in per_type.items() if v is not None]
    ref_value = next((v for v in ref_ids.values() if v is not None), None)
    if ref_value is not None:
        candidates.append((ref_type or "MANUAL", ref_value))
    if len(candidates) > 1:
        raise ValueError("only one external identifier may be given")

    data["reference"] = {"kind": candidates[0][0], "value": candidates[0][1]} if candidates else None
    return data


class _AcceptsLegacyReference(BaseModel):
    @model_validator(mode="before")
    @classmethod
    def _fold_reference(cls, data: Any) -> Any:
        return fold_legacy_reference(data)


# ---------------------------------------------------------------------------
# Members and spaces
# ---------------------------------------------------------------------------


class MemberCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8)


class MemberUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)


class MemberSummary(BaseModel):
    id: UUID
    name: str
    email: Optional[EmailStr] = None
    model_config = ConfigDict(from_attributes=True)


class MemberOut(BaseModel):
    id: UUID
    name: str
    email: EmailStr
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class SpaceSummary(BaseModel):
    id: UUID
    name: str
    model_config = ConfigDict(from_attributes=True)


class MemberSpaceOut(BaseModel):
    space: SpaceSummary
    role: MembershipRole
    joined_at: datetime
    model_config = ConfigDict(from_attributes=True)


class MemberDetailOut(MemberOut):
    memberships: List[MemberSpaceOut] = []


class SpaceCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    owner_id: UUID


class SpaceUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None


class SpaceOut(BaseModel):
    id: UUID
    name: str
    description: Optional[str] = None
    owner_id: UUID
    owner: Optional[MemberSummary] = None
    created_at: datetime
    updated_at: datetime
    model_config = ConfigDict(from_attributes=True)


class SpaceMemberAdd(BaseModel):
    member_id: UUID
    role: MembershipRole = "MEMBER"


class SpaceMemberUpdate(BaseModel):
    role: MembershipRole


class SpaceMembershipOut(BaseModel):
    member_id: UUID
    space_id: UUID
    role: MembershipRole
    joined_at: datetime
    member: MemberSummary
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Locations
# ---------------------------------------------------------------------------


class LocationCreate(_AcceptsLegacyReference):
    name: str = Field(min_length=1, max_length=255)
    location_type: LocationType = "OTHER"
    parent_location_id: Optional[UUID] = None
    reference: Optional[ExternalReference] = None
    created_by_id: UUID


class LocationUpdate(_AcceptsLegacyReference):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    location_type: Optional[LocationType] = None
    parent_location_id: Optional[UUID] = None
    reference: Optional[ExternalReference] = None
    updated_by_id: Optional[UUID] = None


class LocationOut(BaseModel):
    id: UUID
    name: str
    space_id: UUID
    parent_location_id: Optional[UUID] = None
    location_type: LocationType
    reference: Optional[ExternalReference] = None
    created_by_id: Optional[UUID] = None
    updated_by_id: Optional[UUID] = None
    created_by: Optional[MemberSummary] = None
    created_at: datetime
    updated_at: datetime
    path: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Items
# ---------------------------------------------------------------------------


class ItemCreate(_AcceptsLegacyReference):
    name: str = Field(min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: int = Field(default=1, ge=0)
    image_url: Optional[HttpUrl] = None
    location_id: UUID
    reference: Optional[ExternalReference] = None
    created_by_id: UUID


class ItemUpdate(_AcceptsLegacyReference):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = None
    quantity: Optional[int] = Field(default=None, ge=0)
    image_url: Optional[HttpUrl] = None
    reference: Optional[ExternalReference] = None
    updated_by_id: Optional[UUID] = None


class ItemMove(BaseModel):
    to_location_id: UUID
    moved_by_id: UUID
    notes: Optional[str] = None


class ItemLocationOut(BaseModel):
    id: UUID
    name: str
    parent_location_id: Optional[UUID] = None
    path: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class TagSummary(BaseModel):
    id: UUID
    name: str
    color: Optional[str] = None
    model_config = ConfigDict(from_attributes=True)


class ItemOut(BaseModel):
    id: UUID
    name: str
    space_id: UUID
    description: Optional[str] = None
    quantity: int
    image_url: Optional[str] = None
    location_id: UUID
    reference: Optional[ExternalReference] = None
    created_by_id: Optional[UUID] = None
    updated_by_id: Optional[UUID] = None
    last_moved_by_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
    location: Optional[ItemLocationOut] = None
    tags: List[TagSummary] = []
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Tags
# ---------------------------------------------------------------------------


class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR_PATTERN)
    created_by_id: UUID


class TagOut(BaseModel):
    id: UUID
    name: str
    color: Optional[str] = None
    space_id: UUID
    created_by_id: Optional[UUID] = None
    created_at: datetime
    item_count: int = 0
    model_config = ConfigDict(from_attributes=True)


class TagAssign(BaseModel):
    tag_id: UUID


class ItemTagOut(BaseModel):
    item_id: UUID
    tag_id: UUID
    assigned_at: datetime
    model_config = ConfigDict(from_attributes=True)


# ---------------------------------------------------------------------------
# Movement ledger
# ---------------------------------------------------------------------------


class EntityRef(BaseModel):
    id: Optional[UUID] = None
    name: Optional[str] = None
    # the referenced row was deleted after the movement was recorded
    deleted: bool = False


class MovementOut(BaseModel):
    id: int
    item: EntityRef
    from_location: Optional[EntityRef] = None
    to_location: EntityRef
    moved_by: EntityRef
    notes: Optional[str] = None
    moved_at: datetime
