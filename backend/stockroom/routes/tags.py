from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..services import tags as tag_service
from .. import schemas

router = APIRouter(prefix="/spaces/{space_id}", tags=["tags"])


@router.post("/tags", status_code=201, response_model=schemas.Envelope[schemas.TagOut])
async def create_tag(space_id: UUID, payload: schemas.TagCreate, db: Session = Depends(get_db)):
    return schemas.ok(tag_service.create_tag(db, space_id, payload))


@router.get("/tags", response_model=schemas.Envelope[list[schemas.TagOut]])
async def list_tags(space_id: UUID, db: Session = Depends(get_db)):
    return schemas.ok(tag_service.list_tags(db, space_id))


@router.delete("/tags/{tag_id}", status_code=204, response_class=Response)
async def delete_tag(space_id: UUID, tag_id: UUID, db: Session = Depends(get_db)):
    tag_service.delete_tag(db, space_id, tag_id)
    return Response(status_code=204)


@router.post(
    "/items/{item_id}/tags",
    status_code=201,
    response_model=schemas.Envelope[schemas.ItemTagOut],
)
async def assign_tag(
    space_id: UUID,
    item_id: UUID,
    payload: schemas.TagAssign,
    db: Session = Depends(get_db),
):
    link = tag_service.assign_tag(db, space_id, item_id, payload)
    return schemas.ok(schemas.ItemTagOut.model_validate(link))


@router.delete("/items/{item_id}/tags/{tag_id}", status_code=204, response_class=Response)
async def unassign_tag(
    space_id: UUID,
    item_id: UUID,
    tag_id: UUID,
    db: Session = Depends(get_db),
):
    tag_service.unassign_tag(db, space_id, item_id, tag_id)
    return Response(status_code=204)
