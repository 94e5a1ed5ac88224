from typing import Any, Dict

from fastapi.encoders import jsonable_encoder


def ok(data: Any) -> Dict[str, Any]:
    """Return a success envelope.

    ``data`` is run through :func:`jsonable_encoder` so ORM-derived pydantic
    models and ``Decimal`` amounts serialise the same way everywhere.
    """
    return {"ok": True, "data": jsonable_encoder(data)}


def err(
    code: int | str,
    message: str,
    details: Any = None,
    hint: str | None = None,
) -> Dict[str, Any]:
    """Return an error envelope."""
    from ..middlewares.request_id import request_id_ctx

    error: Dict[str, Any] = {"code": code, "message": message}
    if hint:
        error["hint"] = hint
    if details:
        error["details"] = jsonable_encoder(details)

    return {"ok": False, "request_id": request_id_ctx.get(None), "error": error}


def page(items: list, total: int, page_no: int, size: int) -> Dict[str, Any]:
    """Wrap one page of ``items`` with its position in the full result."""
    return {
        "items": items,
        "total": total,
        "page": page_no,
        "size": size,
        "pages": (total + size - 1) // size if size else 0,
    }
