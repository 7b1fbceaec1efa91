from fastapi import APIRouter

from app.core.error_codes import REQ_DEBUG_ERROR
from app.core.exceptions import RequestError

router = APIRouter(
    prefix="/debug",
    tags=["debug"],
)


@router.get("/error")
async def raise_error():
    """
    Debug endpoint to verify the AppError -> ErrorResponse flow.
    """
    raise RequestError(
        code=REQ_DEBUG_ERROR,
        message="Debug error for testing global exception handler",
        details={"hint": "expected; this route always fails"},
    )


@router.get("/unhandled")
async def raise_unhandled():
    """
    Debug endpoint to verify the catch-all 500 handler.
    """
    raise RuntimeError("debug: unhandled failure")
