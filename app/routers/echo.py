import asyncio
from functools import lru_cache
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile

from app.core.config import get_settings
from app.core.logging import get_logger
from app.schemas.echo import AdvisoryInsight, AdvisoryRequest, BiplaneAnalyzeResponse
from app.services.echo_service import BiplaneAnalyzeInput, ClipInput, EchoService

logger = get_logger(__name__)

router = APIRouter(prefix="/echo", tags=["echo"])

DISCONNECT_POLL_S = 0.1


@lru_cache(maxsize=1)
def get_echo_service() -> EchoService:
    return EchoService(get_settings())


async def _clip(upload: UploadFile, roi: Optional[str]) -> ClipInput:
    return ClipInput(
        video_bytes=await upload.read(),
        filename=upload.filename,
        content_type=upload.content_type,
        roi=roi,
    )


async def watch_disconnect(request: Request, cancel: asyncio.Event, poll_s: float = DISCONNECT_POLL_S) -> None:
    """
    Set `cancel` once the client goes away; the biplane walk checks it
    between frames.
    """
    while not cancel.is_set():
        if await request.is_disconnected():
            logger.info("request_id={} client disconnected, cancelling analysis", request.state.request_id)
            cancel.set()
            return
        await asyncio.sleep(poll_s)


@router.post("/biplane", response_model=BiplaneAnalyzeResponse, response_model_exclude_none=True)
async def analyze_biplane(
    request: Request,
    a4c: UploadFile = File(...),
    a2c: UploadFile = File(...),
    a4c_roi: Optional[str] = Form(None, description="x,y,w,h in 600x450 logical coordinates"),
    a2c_roi: Optional[str] = Form(None, description="x,y,w,h in 600x450 logical coordinates"),
    heart_rate: float = Form(74.0, gt=0),
    include_insight: bool = Form(False),
    service: EchoService = Depends(get_echo_service),
):
    input_ = BiplaneAnalyzeInput(
        a4c=await _clip(a4c, a4c_roi),
        a2c=await _clip(a2c, a2c_roi),
        heart_rate=heart_rate,
        include_insight=include_insight,
    )

    cancel = asyncio.Event()
    watcher = asyncio.create_task(watch_disconnect(request, cancel))
    try:
        return await service.analyze_biplane(input_, request_id=request.state.request_id, cancel=cancel)
    finally:
        watcher.cancel()


@router.post("/insight", response_model=AdvisoryInsight)
async def insight(body: AdvisoryRequest, service: EchoService = Depends(get_echo_service)):
    return await service.advisory.get_insight(body)
