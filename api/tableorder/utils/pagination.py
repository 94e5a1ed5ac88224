"""Page/size pagination shared by the admin listing endpoints."""

from __future__ import annotations

from dataclasses import dataclass

from fastapi import Query

# Hard cap to protect against overly large responses
MAX_SIZE = 100
DEFAULT_SIZE = 20


@dataclass
class Pagination:
    """Zero-based page number and page size."""

    page: int = 0
    size: int = DEFAULT_SIZE

    @property
    def offset(self) -> int:
        return self.page * self.size


def pagination(
    page: int = Query(0, ge=0), size: int = Query(DEFAULT_SIZE, ge=1)
) -> Pagination:
    """Return sanitised pagination parameters with ``size`` capped at :data:`MAX_SIZE`."""

    return Pagination(page=page, size=min(size, MAX_SIZE))
