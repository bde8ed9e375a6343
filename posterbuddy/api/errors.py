"""Map adapter result kinds onto HTTP errors."""
from fastapi import HTTPException

from posterbuddy.core.adapter import OpResult

STATUS_BY_KIND = {
    "not_found": 404,
    "conflict": 409,
    "validation": 400,
    "network": 503,
}


def raise_for_result(result: OpResult) -> None:
    if result.ok:
        return
    raise HTTPException(
        status_code=STATUS_BY_KIND.get(result.kind or "", 502),
        detail=result.error or "Document store error",
    )
