from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ..database import get_db
from ..deps import get_path_resolver
from ..services import locations as location_service
from ..services.locations import PathResolver
from .. import schemas

router = APIRouter(prefix="/spaces/{space_id}/locations", tags=["locations"])


@router.post("", status_code=201, response_model=schemas.Envelope[schemas.LocationOut])
async def create_location(
    space_id: UUID,
    payload: schemas.LocationCreate,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    location = location_service.create_location(db, space_id, payload, resolver=resolver)
    return schemas.ok(location)


@router.get("", response_model=schemas.Envelope[list[schemas.LocationOut]])
async def list_locations(
    space_id: UUID,
    parent_location_id: Optional[UUID] = None,
    location_type: Optional[schemas.LocationType] = None,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    rows = location_service.list_locations(
        db,
        space_id,
        parent_location_id=parent_location_id,
        location_type=location_type,
        resolver=resolver,
    )
    return schemas.ok(rows)


@router.get("/scan/{identifier}", response_model=schemas.Envelope[schemas.LocationOut])
async def scan_location(
    space_id: UUID,
    identifier: str,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    location = location_service.find_location_by_identifier(
        db, space_id, identifier, resolver=resolver
    )
    return schemas.ok(location)


@router.get("/{location_id}", response_model=schemas.Envelope[schemas.LocationOut])
async def get_location(
    space_id: UUID,
    location_id: UUID,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    return schemas.ok(location_service.get_location(db, space_id, location_id, resolver=resolver))


@router.patch("/{location_id}", response_model=schemas.Envelope[schemas.LocationOut])
async def update_location(
    space_id: UUID,
    location_id: UUID,
    payload: schemas.LocationUpdate,
    db: Session = Depends(get_db),
    resolver: PathResolver = Depends(get_path_resolver),
):
    location = location_service.update_location(
        db, space_id, location_id, payload, resolver=resolver
    )
    return schemas.ok(location)


@router.delete("/{location_id}", status_code=204, response_class=Response)
async def delete_location(
    space_id: UUID,
    location_id: UUID,
    db: Session = Depends(get_db),
):
    location_service.delete_location(db, space_id, location_id)
    return Response(status_code=204)
