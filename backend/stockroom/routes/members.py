from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from slowapi import Limiter
from slowapi.util import get_remote_address

from ..database import get_db
from ..deps import PageParams, get_page_params
from ..services import members as member_service
from ..settings import get_settings
from .. import schemas

limiter = Limiter(key_func=get_remote_address)


def rate_limit(limit: str):
    if get_settings().TESTING:
        def wrapper(func):
            return func
        return wrapper
    return limiter.limit(limit)


router = APIRouter(prefix="/spaces/members", tags=["members"])


@router.post("", status_code=201, response_model=schemas.Envelope[schemas.MemberOut])
@rate_limit(get_settings().SIGNUP_RATE_LIMIT)
async def signup(
    request: Request,
    payload: schemas.MemberCreate,
    db: Session = Depends(get_db),
):
    member = member_service.create_member(db, payload)
    return schemas.ok(schemas.MemberOut.model_validate(member))


@router.get("", response_model=schemas.PagedEnvelope[schemas.MemberOut])
async def list_members(
    page: PageParams = Depends(get_page_params),
    db: Session = Depends(get_db),
):
    return member_service.list_members(db, limit=page.limit, offset=page.offset).envelope()


@router.get("/{member_id}", response_model=schemas.Envelope[schemas.MemberDetailOut])
async def get_member(member_id: UUID, db: Session = Depends(get_db)):
    member = member_service.get_member(db, member_id)
    return schemas.ok(schemas.MemberDetailOut.model_validate(member))


@router.patch("/{member_id}", response_model=schemas.Envelope[schemas.MemberOut])
async def update_member(
    member_id: UUID,
    payload: schemas.MemberUpdate,
    db: Session = Depends(get_db),
):
    member = member_service.update_member(db, member_id, payload)
    return schemas.ok(schemas.MemberOut.model_validate(member))
