from typing import Optional, List, Literal
from pydantic import BaseModel, Field


Severity = Literal["Normal", "Mild", "Moderate", "Severe"]


class RoiIn(BaseModel):
    x: float
    y: float
    w: float = Field(gt=0)
    h: float = Field(gt=0)


class AnalyzeMeta(BaseModel):
    request_id: str
    engine_version: str = "biplane-v1"


class ViewMetricsOut(BaseModel):
    view: Literal["a4c", "a2c"]
    ejection_fraction: float
    peak_strain: float
    latest_strain: float
    max_area: float
    min_area: float
    point_count: int
    frames_processed: int
    processed: bool


class BiplaneResult(BaseModel):
    ejection_fraction: float = Field(description="Mean of per-view EFs, percent")
    gls: float = Field(description="Mean of per-view peak strain, percent (negative = shortening)")
    heart_rate: float
    views: List[ViewMetricsOut]
    segmental_map: List[float] = Field(min_length=17, max_length=17)


class AdvisoryRequest(BaseModel):
    gls: float
    ef: float
    hr: float
    segmental_values: List[float] = Field(default_factory=list)
    still_frame_b64: Optional[str] = Field(
        default=None, description="Optional JPEG still frame, base64 encoded"
    )


class AdvisoryInsight(BaseModel):
    observation: str
    severity: Severity
    recommendation: str


class BiplaneAnalyzeResponse(BaseModel):
    ok: bool = True
    meta: AnalyzeMeta
    result: BiplaneResult
    insight: Optional[AdvisoryInsight] = None
