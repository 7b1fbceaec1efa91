from typing import Optional, List, Dict, Any
from pydantic import BaseModel, Field

from app.core.exceptions import AppError


class FieldError(BaseModel):
    field: str
    reason: str


class ErrorDetail(BaseModel):
    code: str
    message: str
    details: Optional[Dict[str, Any]] = None
    retryable: bool = False

    @classmethod
    def from_app_error(cls, exc: AppError) -> "ErrorDetail":
        return cls(
            code=exc.code,
            message=exc.message,
            details=exc.details,
            retryable=exc.retryable,
        )


class ErrorResponse(BaseModel):
    request_id: str = Field(description="Same value as the x-request-id response header")
    ok: bool = False
    error: ErrorDetail


def field_errors_from(errors: List[Dict[str, Any]]) -> List[FieldError]:
    # pydantic loc tuples, e.g. ("body", "a4c") -> "body.a4c"
    return [FieldError(field=".".join(map(str, e["loc"])), reason=e["msg"]) for e in errors]
