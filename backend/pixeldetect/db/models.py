from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

STATUS_PENDING = "pending"
STATUS_ANALYZING = "analyzing"
STATUS_COMPLETE = "complete"
STATUS_ERROR = "error"

STATUSES = (STATUS_PENDING, STATUS_ANALYZING, STATUS_COMPLETE, STATUS_ERROR)


@dataclass(frozen=True)
class AnalysisRecord:
    analysis_id: str
    user_id: str
    image_url: str
    status: str
    created_at: str
    result_json: Optional[str]
    error_message: Optional[str]
    analyzed_at: Optional[str]

    def result(self) -> Optional[Dict[str, Any]]:
        """Decoded result payload; None unless the analysis completed."""
        if not self.result_json:
            return None
        data = json.loads(self.result_json)
        return data if isinstance(data, dict) else None
