from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import PageParams, get_page_params
from ..services import members as member_service
from ..services import spaces as space_service
from .. import schemas

router = APIRouter(prefix="/spaces", tags=["spaces"])


@router.post("", status_code=201, response_model=schemas.Envelope[schemas.SpaceOut])
async def create_space(payload: schemas.SpaceCreate, db: Session = Depends(get_db)):
    space = space_service.create_space(db, payload)
    return schemas.ok(schemas.SpaceOut.model_validate(space))


@router.get("", response_model=schemas.PagedEnvelope[schemas.SpaceOut])
async def list_spaces(
    page: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
):
    return space_service.list_spaces(db, limit=page.limit, offset=page.offset).envelope()


@router.get("/{space_id}", response_model=schemas.Envelope[schemas.SpaceOut])
async def get_space(space_id: UUID, db: Session = Depends(get_db)):
    space = space_service.require_space(db, space_id)
    return schemas.ok(schemas.SpaceOut.model_validate(space))


@router.patch("/{space_id}", response_model=schemas.Envelope[schemas.SpaceOut])
async def update_space(
    space_id: UUID,
    payload: schemas.SpaceUpdate,
    db: Session = Depends(get_db),
):
    space = space_service.update_space(db, space_id, payload)
    return schemas.ok(schemas.SpaceOut.model_validate(space))


@router.delete("/{space_id}", status_code=204, response_class=Response)
async def delete_space(space_id: UUID, db: Session = Depends(get_db)):
    space_service.delete_space(db, space_id)
    return Response(status_code=204)


@router.post(
    "/{space_id}/members",
    status_code=201,
    response_model=schemas.Envelope[schemas.SpaceMembershipOut],
)
async def add_space_member(
    space_id: UUID,
    payload: schemas.SpaceMemberAdd,
    db: Session = Depends(get_db),
):
    membership = member_service.add_space_member(db, space_id, payload)
    return schemas.ok(schemas.SpaceMembershipOut.model_validate(membership))


@router.get(
    "/{space_id}/members",
    response_model=schemas.Envelope[list[schemas.SpaceMembershipOut]],
)
async def list_space_members(space_id: UUID, db: Session = Depends(get_db)):
    rows = member_service.list_space_members(db, space_id)
    return schemas.ok([schemas.SpaceMembershipOut.model_validate(m) for m in rows])


@router.get(
    "/{space_id}/members/{member_id}",
    response_model=schemas.Envelope[schemas.SpaceMembershipOut],
)
async def get_space_member(space_id: UUID, member_id: UUID, db: Session = Depends(get_db)):
    membership = member_service.get_space_member(db, space_id, member_id)
    return schemas.ok(schemas.SpaceMembershipOut.model_validate(membership))


@router.patch(
    "/{space_id}/members/{member_id}",
    response_model=schemas.Envelope[schemas.SpaceMembershipOut],
)
async def update_space_member(
    space_id: UUID,
    member_id: UUID,
    payload: schemas.SpaceMemberUpdate,
    db: Session = Depends(get_db),
):
    membership = member_service.update_space_member_role(db, space_id, member_id, payload)
    return schemas.ok(schemas.SpaceMembershipOut.model_validate(membership))


@router.delete("/{space_id}/members/{member_id}", status_code=204, response_class=Response)
async def remove_space_member(
    space_id: UUID,
    member_id: UUID,
    db: Session = Depends(get_db),
):
    member_service.remove_space_member(db, space_id, member_id)
    return Response(status_code=204)
