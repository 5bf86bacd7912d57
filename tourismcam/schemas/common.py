from __future__ import annotations

import math
from typing import Generic, TypeVar

from pydantic import BaseModel


T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    success: bool = True
    data: T
    message: str | None = None


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    totalPages: int
    hasNextPage: bool
    hasPrevPage: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        pages = math.ceil(total / limit) if limit else 0
        return cls(
            page=page,
            limit=limit,
            total=total,
            totalPages=pages,
            hasNextPage=page < pages,
            hasPrevPage=page > 1,
        )


def page_offset(page: int, limit: int) -> int:
    return (max(page, 1) - 1) * limit
