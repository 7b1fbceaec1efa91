from __future__ import annotations

import json
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from app.core.config import Settings
from app.core.error_codes import UPSTREAM_ADVISORY_FAILED, UPSTREAM_ADVISORY_NOT_CONFIGURED
from app.core.exceptions import UpstreamError
from app.core.logging import get_logger
from app.schemas.echo import AdvisoryInsight, AdvisoryRequest

logger = get_logger(__name__)

FALLBACK_INSIGHT = AdvisoryInsight(
    observation="analysis unavailable, manual review required",
    severity="Moderate",
    recommendation="ensure stable connectivity and valid data",
)

PROMPT_TEMPLATE = """\
As a senior cardiologist specializing in echocardiography, analyze the following speckle tracking results:
- Global Longitudinal Strain (GLS): {gls:.1f}%
- Estimated Ejection Fraction: {ef:.1f}%
- Heart Rate: {hr:.0f} BPM
- Segmental Strain (AHA 17 segments): {segments}

Provide a concise clinical insight including:
1. Observation of myocardial function.
2. Severity assessment (Normal, Mild, Moderate, Severe).
3. Potential diagnosis or recommendation for further imaging.
Return JSON with keys observation, severity, recommendation.
"""


def build_prompt(req: AdvisoryRequest) -> str:
    segments = ", ".join(f"{v:.1f}" for v in req.segmental_values) or "n/a"
    return PROMPT_TEMPLATE.format(gls=req.gls, ef=req.ef, hr=req.hr, segments=segments)


class AdvisoryClient:
    """
    Thin client for the clinical-insight text service.

    get_insight() never raises: every failure is logged and replaced by
    FALLBACK_INSIGHT. fetch_insight() is the raising variant.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.settings = settings
        self._transport = transport

    def _payload(self, req: AdvisoryRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": self.settings.advisory_model,
            "prompt": build_prompt(req),
            "data": req.model_dump(exclude={"still_frame_b64"}),
            "response_schema": AdvisoryInsight.model_json_schema(),
        }
        if req.still_frame_b64:
            payload["image"] = {"mime_type": "image/jpeg", "data": req.still_frame_b64}
        return payload

    async def fetch_insight(self, req: AdvisoryRequest) -> AdvisoryInsight:
        if not self.settings.advisory_url:
            raise UpstreamError(
                code=UPSTREAM_ADVISORY_NOT_CONFIGURED,
                message="Advisory service URL is not configured",
                retryable=False,
            )

        headers = {}
        if self.settings.advisory_api_key:
            headers["Authorization"] = f"Bearer {self.settings.advisory_api_key}"

        try:
            async with httpx.AsyncClient(
                timeout=self.settings.advisory_timeout_s,
                transport=self._transport,
            ) as client:
                res = await client.post(self.settings.advisory_url, json=self._payload(req), headers=headers)
                res.raise_for_status()
                body = res.json()
        except httpx.HTTPStatusError as e:
            raise UpstreamError(
                code=UPSTREAM_ADVISORY_FAILED,
                message="Advisory service returned an error status",
                details={"status_code": e.response.status_code},
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamError(
                code=UPSTREAM_ADVISORY_FAILED,
                message="Advisory service request failed",
                details={"reason": str(e)},
            ) from e
        except json.JSONDecodeError as e:
            raise UpstreamError(
                code=UPSTREAM_ADVISORY_FAILED,
                message="Advisory service returned non-JSON body",
                retryable=False,
            ) from e

        # some text services wrap the structured answer as a JSON string
        if isinstance(body, dict) and isinstance(body.get("text"), str):
            try:
                body = json.loads(body["text"])
            except json.JSONDecodeError as e:
                raise UpstreamError(
                    code=UPSTREAM_ADVISORY_FAILED,
                    message="Advisory text payload is not JSON",
                    retryable=False,
                ) from e

        try:
            return AdvisoryInsight.model_validate(body)
        except ValidationError as e:
            raise UpstreamError(
                code=UPSTREAM_ADVISORY_FAILED,
                message="Advisory response does not match the insight schema",
                details={"errors": e.error_count()},
                retryable=False,
            ) from e

    async def get_insight(self, req: AdvisoryRequest) -> AdvisoryInsight:
        try:
            return await self.fetch_insight(req)
        except UpstreamError as e:
            logger.warning("advisory fallback: {} ({})", e.code, e.message)
            return FALLBACK_INSIGHT
        except Exception as e:
            logger.opt(exception=e).warning("advisory fallback: unexpected error")
            return FALLBACK_INSIGHT
