from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException

from ..core.config import settings
from ..db.sqlite import SQLiteAnalysisStore
from ..schemas.analyses import AnalysisResponse, AnalyzeAccepted, SubmitAnalysisRequest
from ..schemas.auth import MeResponse
from ..services import analyses as svc
from ..services.analyzers import get_analyzer
from ..services.jobs import start_analysis_in_thread
from .auth import get_optional_user


router = APIRouter(prefix="/analyses", tags=["analyses"])
store = SQLiteAnalysisStore(settings.analyses_db_path)
analyzer = get_analyzer(settings.analyzer_backend, delay_seconds=settings.analysis_delay_seconds)


def _user_id(user: Optional[MeResponse]) -> Optional[str]:
    return user.user_id if user is not None else None


@router.post("", response_model=AnalysisResponse, status_code=201)
def submit(req: SubmitAnalysisRequest, user: Optional[MeResponse] = Depends(get_optional_user)) -> AnalysisResponse:
    try:
        rec = svc.submit_analysis(store, _user_id(user), req.image_url)
    except svc.Unauthenticated as e:
        raise HTTPException(status_code=401, detail=str(e))
    except svc.InvalidInput as e:
        raise HTTPException(status_code=400, detail=str(e))
    # Analysis is not started here; clients call /analyses/{id}/analyze.
    return AnalysisResponse.from_record(rec)


@router.post("/{analysis_id}/analyze", response_model=AnalyzeAccepted, status_code=202)
def analyze(analysis_id: str, user: Optional[MeResponse] = Depends(get_optional_user)) -> AnalyzeAccepted:
    try:
        rec = svc.request_analysis(store, analysis_id, _user_id(user))
    except svc.NotFound:
        raise HTTPException(status_code=404, detail="Analysis not found")
    start_analysis_in_thread(rec.analysis_id, store, analyzer, settings.analysis_timeout_seconds)
    return AnalyzeAccepted(analysis_id=rec.analysis_id)


@router.get("", response_model=List[AnalysisResponse])
def list_analyses(user: Optional[MeResponse] = Depends(get_optional_user)) -> List[AnalysisResponse]:
    return [AnalysisResponse.from_record(r) for r in svc.list_analyses(store, _user_id(user))]


@router.get("/{analysis_id}", response_model=AnalysisResponse)
def get_analysis(analysis_id: str, user: Optional[MeResponse] = Depends(get_optional_user)) -> AnalysisResponse:
    rec = svc.get_analysis(store, analysis_id, _user_id(user))
    if rec is None:
        raise HTTPException(status_code=404, detail="Analysis not found")
    return AnalysisResponse.from_record(rec)


@router.delete("/{analysis_id}")
def remove(analysis_id: str, user: Optional[MeResponse] = Depends(get_optional_user)) -> dict:
    try:
        svc.remove_analysis(store, analysis_id, _user_id(user))
    except svc.Unauthenticated as e:
        raise HTTPException(status_code=401, detail=str(e))
    except svc.NotFound:
        raise HTTPException(status_code=404, detail="Not found")
    return {"ok": True}
