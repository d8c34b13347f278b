# app/routers/pagination.py
"""Page/size query parameters shared by list endpoints (0-based pages)."""

from dataclasses import dataclass

from fastapi import Query

from app.config import settings


@dataclass
class PageParams:
    page: int
    size: int

    @property
    def offset(self) -> int:
        return self.page * self.size


def page_params(
    page: int = Query(0, ge=0),
    size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1),
) -> PageParams:
    return PageParams(page=page, size=min(size, settings.MAX_PAGE_SIZE))
