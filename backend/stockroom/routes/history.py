from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import PageParams, get_page_params
from ..services import movements
from .. import schemas

router = APIRouter(prefix="/spaces/{space_id}", tags=["history"])


@router.get("/items/{item_id}/history", response_model=schemas.PagedEnvelope[schemas.MovementOut])
async def item_history(
    space_id: UUID,
    item_id: UUID,
    page: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
):
    return movements.item_history(
        db, space_id, item_id, limit=page.limit, offset=page.offset
    ).envelope()


@router.get("/history", response_model=schemas.PagedEnvelope[schemas.MovementOut])
async def space_history(
    space_id: UUID,
    location_id: Optional[UUID] = None,
    member_id: Optional[UUID] = None,
    page: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
):
    result = movements.space_history(
        db,
        space_id,
        location_id=location_id,
        member_id=member_id,
        limit=page.limit,
        offset=page.offset,
    )
    return result.envelope()
