from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, Field

from ..db.models import AnalysisRecord
from ..services.analyzers import AnalysisResult, dominant_label


class SubmitAnalysisRequest(BaseModel):
    image_url: str = Field(..., max_length=2048)


class AnalysisResultOut(BaseModel):
    is_edited: bool
    is_ai_generated: bool
    is_photoshopped: bool
    confidence: int = Field(..., ge=0, le=100)
    details_markdown: str
    flags: List[str] = []


class AnalysisResponse(BaseModel):
    analysis_id: str
    image_url: str
    status: str = Field(..., pattern="^(pending|analyzing|complete|error)$")
    created_at: str
    result: Optional[AnalysisResultOut] = None
    label: Optional[str] = None
    error_message: Optional[str] = None
    analyzed_at: Optional[str] = None

    @classmethod
    def from_record(cls, rec: AnalysisRecord) -> "AnalysisResponse":
        result = rec.result()
        label = dominant_label(AnalysisResult.from_dict(result)) if result else None
        return cls(
            analysis_id=rec.analysis_id,
            image_url=rec.image_url,
            status=rec.status,
            created_at=rec.created_at,
            result=AnalysisResultOut(**result) if result else None,
            label=label,
            error_message=rec.error_message,
            analyzed_at=rec.analyzed_at,
        )


class AnalyzeAccepted(BaseModel):
    ok: bool = True
    analysis_id: str
