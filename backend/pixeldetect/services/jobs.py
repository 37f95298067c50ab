from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

from ..db.models import (
    STATUS_ANALYZING,
    STATUS_COMPLETE,
    STATUS_ERROR,
    STATUS_PENDING,
    AnalysisRecord,
)
from ..db.sqlite import SQLiteAnalysisStore
from .analyzers import AnalysisFailure, AnalysisResult, Analyzer

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Analysis failed"

# Forward-only lifecycle: target status -> statuses it may be entered from.
_ALLOWED_FROM: Dict[str, Tuple[str, ...]] = {
    STATUS_ANALYZING: (STATUS_PENDING,),
    STATUS_COMPLETE: (STATUS_ANALYZING,),
    STATUS_ERROR: (STATUS_ANALYZING,),
}


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _update_status(
    store: SQLiteAnalysisStore,
    analysis_id: str,
    status: str,
    result: Optional[AnalysisResult] = None,
    error_message: Optional[str] = None,
) -> Optional[AnalysisRecord]:
    """Sole writer of status/result/error_message/analyzed_at.

    Skips ownership checks; only the worker below calls it, after the owner
    was verified when the run was requested. Returns None when the record is
    gone or not in a status the transition may start from.
    """
    if status not in _ALLOWED_FROM:
        raise ValueError(f"Unsupported status transition target: {status}")
    if status == STATUS_COMPLETE:
        if result is None:
            raise ValueError("A complete analysis needs a result")
        return store.update_analysis(
            analysis_id,
            status=status,
            result=result.to_dict(),
            analyzed_at=_now_iso(),
            clear_error=True,
            only_if_status=_ALLOWED_FROM[status],
        )
    if status == STATUS_ERROR:
        return store.update_analysis(
            analysis_id,
            status=status,
            error_message=error_message or GENERIC_FAILURE_MESSAGE,
            clear_result=True,
            only_if_status=_ALLOWED_FROM[status],
        )
    return store.update_analysis(
        analysis_id,
        status=status,
        clear_result=True,
        clear_error=True,
        only_if_status=_ALLOWED_FROM[status],
    )


def _analyze_with_timeout(analyzer: Analyzer, image_url: str, timeout_seconds: Optional[float]) -> Any:
    outcome: Dict[str, Any] = {}

    def _target() -> None:
        try:
            outcome["result"] = analyzer.analyze(image_url)
        except Exception as e:
            outcome["error"] = e

    # Daemon, so an abandoned analyzer never holds up interpreter exit.
    t = threading.Thread(target=_target, name="analyzer", daemon=True)
    t.start()
    t.join(timeout_seconds)
    if t.is_alive():
        raise TimeoutError(f"Analysis timed out after {timeout_seconds:g} seconds")
    if "error" in outcome:
        raise outcome["error"]
    return outcome.get("result")


def _check_result(result: Any) -> AnalysisResult:
    """Reject analyzer output that a complete analysis may not carry."""
    if not isinstance(result, AnalysisResult):
        raise AnalysisFailure(f"Analyzer returned {type(result).__name__}, expected AnalysisResult")
    if isinstance(result.confidence, bool) or not isinstance(result.confidence, int):
        raise AnalysisFailure(f"Analyzer returned a non-integer confidence: {result.confidence!r}")
    if not 0 <= result.confidence <= 100:
        raise AnalysisFailure(f"Analyzer returned confidence {result.confidence} outside 0-100")
    if not isinstance(result.flags, list) or not all(isinstance(f, str) for f in result.flags):
        raise AnalysisFailure("Analyzer returned flags that are not a list of strings")
    if not isinstance(result.details_markdown, str):
        raise AnalysisFailure("Analyzer returned a non-text report")
    return result


def run_analysis(
    analysis_id: str,
    store: SQLiteAnalysisStore,
    analyzer: Analyzer,
    timeout_seconds: Optional[float] = None,
) -> Optional[AnalysisRecord]:
    """Drive one analysis from pending to a terminal status.

    Raises KeyError if the analysis does not exist. Returns None without
    writing anything if the job was not pending (another run claimed it, or
    it already finished). Otherwise returns the terminal record; failures of
    the analyzer itself are recorded on the job, never raised.
    """
    rec = store.get_analysis(analysis_id)

    claimed = _update_status(store, analysis_id, STATUS_ANALYZING)
    if claimed is None:
        logger.info("[claim] analysis_id=%s skipped (status=%s)", analysis_id, rec.status)
        return None
    logger.info("[claim] analysis_id=%s analyzer=%s", analysis_id, getattr(analyzer, "name", type(analyzer).__name__))

    try:
        result = _check_result(_analyze_with_timeout(analyzer, rec.image_url, timeout_seconds))
        logger.info("[analyze] analysis_id=%s flags=%s confidence=%s", analysis_id, ",".join(result.flags), result.confidence)
        final = _update_status(store, analysis_id, STATUS_COMPLETE, result=result)
    except Exception as e:
        if isinstance(e, TimeoutError):
            logger.warning("[error] analysis_id=%s %s", analysis_id, e)
        else:
            logger.exception("[error] analysis_id=%s %s: %s", analysis_id, type(e).__name__, e)
        final = _update_status(store, analysis_id, STATUS_ERROR, error_message=str(e) or GENERIC_FAILURE_MESSAGE)

    if final is None:
        logger.info("[done] analysis_id=%s removed while analyzing", analysis_id)
    else:
        logger.info("[done] analysis_id=%s status=%s", analysis_id, final.status)
    return final


def start_analysis_in_thread(
    analysis_id: str,
    store: SQLiteAnalysisStore,
    analyzer: Analyzer,
    timeout_seconds: Optional[float] = None,
) -> threading.Thread:
    def _target() -> None:
        try:
            run_analysis(analysis_id, store, analyzer, timeout_seconds)
        except Exception:
            logger.exception("[abort] analysis_id=%s", analysis_id)

    t = threading.Thread(target=_target, name=f"analysis-{analysis_id}", daemon=True)
    t.start()
    return t
