"""
業務異常 -> HTTPException

detail 帶機器可讀的 kind，文案由前端決定。
"""
from fastapi import HTTPException

from core.exceptions import (
    MatchGameException,
    NotFoundError,
    InvalidStateError,
    PreconditionFailedError,
    ConflictError
)

STATUS_BY_CATEGORY = [
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (ConflictError, 409),
    (PreconditionFailedError, 400),
]


def http_error(exc: MatchGameException) -> HTTPException:
    status_code = 400
    for category, code in STATUS_BY_CATEGORY:
        if isinstance(exc, category):
            status_code = code
            break
    return HTTPException(
        status_code=status_code,
        detail={"kind": exc.kind, "error": type(exc).__name__, "message": str(exc)}
    )
