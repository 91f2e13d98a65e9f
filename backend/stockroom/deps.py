from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Query, Request
from sqlalchemy.orm import Session

from .database import get_db
from .errors import ValidationFailed
from .services.locations import PathResolver
from .settings import Settings


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


@dataclass
class PageParams:
    limit: int
    offset: int


def get_page_params(
    limit: Optional[int] = Query(default=None, ge=1),
    offset: int = Query(default=0, ge=0),
    settings: Settings = Depends(get_app_settings),
) -> PageParams:
    if limit is None:
        limit = settings.DEFAULT_PAGE_SIZE
    elif limit > settings.MAX_PAGE_SIZE:
        raise ValidationFailed(
            f"limit must be at most {settings.MAX_PAGE_SIZE}", field="limit"
        )
    return PageParams(limit=limit, offset=offset)


def get_path_resolver(
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_app_settings),
) -> PathResolver:
    # one resolver per request; its cache never outlives the session
    return PathResolver(db, max_depth=settings.MAX_LOCATION_DEPTH)
