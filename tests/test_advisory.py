import asyncio
import json

import httpx
import pytest

from app.core.config import Settings
from app.core.error_codes import UPSTREAM_ADVISORY_FAILED, UPSTREAM_ADVISORY_NOT_CONFIGURED
from app.core.exceptions import UpstreamError
from app.schemas.echo import AdvisoryRequest
from app.services.advisory_service import FALLBACK_INSIGHT, AdvisoryClient, build_prompt

SETTINGS = Settings(advisory_url="http://advisor.test/insight", advisory_api_key="k")
REQ = AdvisoryRequest(gls=-18.2, ef=58.0, hr=72.0, segmental_values=[-18.0] * 17)

GOOD = {
    "observation": "Preserved longitudinal function.",
    "severity": "Normal",
    "recommendation": "Routine follow-up.",
}


def _client(handler) -> AdvisoryClient:
    return AdvisoryClient(SETTINGS, transport=httpx.MockTransport(handler))


def test_prompt_carries_metrics():
    prompt = build_prompt(REQ)
    assert "-18.2%" in prompt
    assert "58.0%" in prompt
    assert "72 BPM" in prompt


def test_successful_insight_is_parsed():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=GOOD)

    insight = asyncio.run(_client(handler).get_insight(REQ))

    assert insight.severity == "Normal"
    assert insight.observation == GOOD["observation"]
    assert seen["auth"] == "Bearer k"
    assert seen["body"]["model"] == SETTINGS.advisory_model
    assert "image" not in seen["body"]


def test_text_wrapped_insight_is_parsed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"text": json.dumps(GOOD)})

    insight = asyncio.run(_client(handler).get_insight(REQ))
    assert insight.recommendation == "Routine follow-up."


def test_still_frame_is_sent_as_image():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=GOOD)

    req = REQ.model_copy(update={"still_frame_b64": "aGVsbG8="})
    asyncio.run(_client(handler).get_insight(req))

    assert seen["body"]["image"] == {"mime_type": "image/jpeg", "data": "aGVsbG8="}


@pytest.mark.parametrize(
    "handler",
    [
        lambda request: httpx.Response(500, json={"error": "boom"}),
        lambda request: httpx.Response(200, content=b"not json"),
        lambda request: httpx.Response(200, json={"text": "{broken"}),
        lambda request: httpx.Response(200, json={**GOOD, "severity": "Catastrophic"}),
    ],
)
def test_failures_fall_back(handler):
    insight = asyncio.run(_client(handler).get_insight(REQ))
    assert insight == FALLBACK_INSIGHT


def test_transport_error_falls_back():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert asyncio.run(_client(handler).get_insight(REQ)) == FALLBACK_INSIGHT


def test_fetch_raises_upstream_errors():
    with pytest.raises(UpstreamError) as exc:
        asyncio.run(AdvisoryClient(Settings()).fetch_insight(REQ))
    assert exc.value.code == UPSTREAM_ADVISORY_NOT_CONFIGURED

    with pytest.raises(UpstreamError) as exc:
        asyncio.run(_client(lambda request: httpx.Response(503)).fetch_insight(REQ))
    assert exc.value.code == UPSTREAM_ADVISORY_FAILED
    assert exc.value.details == {"status_code": 503}
    assert exc.value.retryable


def test_unconfigured_client_falls_back():
    assert asyncio.run(AdvisoryClient(Settings()).get_insight(REQ)) == FALLBACK_INSIGHT
