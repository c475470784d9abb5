import math
from dataclasses import dataclass
from typing import Any

from sqlalchemy.orm import Query


@dataclass
class Page:
    rows: list[Any]
    page: int
    limit: int
    total: int

    @property
    def pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0

    def as_dict(self) -> dict:
        return {"page": self.page, "limit": self.limit, "total": self.total, "pages": self.pages}


def paginate(query: Query, page: int, limit: int) -> Page:
    page = max(page, 1)
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return Page(rows=rows, page=page, limit=limit, total=total)
