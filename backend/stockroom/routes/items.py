from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import PageParams, get_page_params, get_path_resolver
from ..services import items as item_service
from ..services.locations import PathResolver
from .. import schemas

router = APIRouter(prefix="/spaces/{space_id}/items", tags=["items"])


@router.post("", status_code=201, response_model=schemas.Envelope[schemas.ItemOut])
async def create_item(
    space_id: UUID,
    payload: schemas.ItemCreate,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    return schemas.ok(item_service.create_item(db, space_id, payload, resolver=resolver))


@router.get("", response_model=schemas.PagedEnvelope[schemas.ItemOut])
async def list_items(
    space_id: UUID,
    location_id: Optional[UUID] = None,
    tag_id: Optional[UUID] = None,
    search: Optional[str] = None,
    page: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    result = item_service.list_items(
        db,
        space_id,
        location_id=location_id,
        tag_id=tag_id,
        search=search,
        limit=page.limit,
        offset=page.offset,
        resolver=resolver,
    )
    return result.envelope()


@router.get("/scan/{identifier}", response_model=schemas.Envelope[schemas.ItemOut])
async def scan_item(
    space_id: UUID,
    identifier: str,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    item = item_service.find_item_by_identifier(db, space_id, identifier, resolver=resolver)
    return schemas.ok(item)


@router.get("/{item_id}", response_model=schemas.Envelope[schemas.ItemOut])
async def get_item(
    space_id: UUID,
    item_id: UUID,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    return schemas.ok(item_service.get_item(db, space_id, item_id, resolver=resolver))


@router.patch("/{item_id}", response_model=schemas.Envelope[schemas.ItemOut])
async def update_item(
    space_id: UUID,
    item_id: UUID,
    payload: schemas.ItemUpdate,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    item = item_service.update_item(db, space_id, item_id, payload, resolver=resolver)
    return schemas.ok(item)


@router.post("/{item_id}/move", response_model=schemas.Envelope[schemas.ItemOut])
async def move_item(
    space_id: UUID,
    item_id: UUID,
    payload: schemas.ItemMove,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    item = item_service.move_item(db, space_id, item_id, payload, resolver=resolver)
    return schemas.ok(item)


@router.delete("/{item_id}", status_code=204, response_class=Response)
async def delete_item(space_id: UUID, item_id: UUID, db: Session = Depends(get_db)):
    item_service.delete_item(db, space_id, item_id)
    return Response(status_code=204)
