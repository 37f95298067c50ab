from .analyzers import (
    AnalysisFailure,
    AnalysisResult,
    Analyzer,
    SimulatedForensicAnalyzer,
    dominant_label,
    get_analyzer,
)
from .analyses import (
    InvalidInput,
    NotFound,
    Unauthenticated,
    get_analysis,
    list_analyses,
    remove_analysis,
    request_analysis,
    submit_analysis,
)
from .jobs import run_analysis, start_analysis_in_thread

__all__ = [
    "AnalysisFailure",
    "AnalysisResult",
    "Analyzer",
    "SimulatedForensicAnalyzer",
    "dominant_label",
    "get_analyzer",
    "InvalidInput",
    "NotFound",
    "Unauthenticated",
    "get_analysis",
    "list_analyses",
    "remove_analysis",
    "request_analysis",
    "submit_analysis",
    "run_analysis",
    "start_analysis_in_thread",
]
