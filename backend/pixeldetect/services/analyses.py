from __future__ import annotations

import ipaddress
import logging
import re
import uuid
from typing import List, Optional
from urllib.parse import urlsplit

from ..db.models import AnalysisRecord
from ..db.sqlite import SQLiteAnalysisStore

logger = logging.getLogger(__name__)


class Unauthenticated(Exception):
    """No principal could be resolved for the request."""


class InvalidInput(ValueError):
    pass


class NotFound(KeyError):
    """The analysis does not exist or belongs to someone else."""


# Characters the URL standard forbids in a host, plus whitespace.
_HOST_FORBIDDEN = re.compile(r"[\s\x00#%/:<>?@\[\\\]^|\"{}]")


def validate_image_url(image_url: str) -> str:
    """Return the trimmed URL, or raise InvalidInput unless it is absolute."""
    candidate = (image_url or "").strip()
    try:
        parts = urlsplit(candidate)
        host = parts.hostname
        # Raises ValueError for a non-numeric or out-of-range port.
        parts.port
    except ValueError:
        raise InvalidInput("Invalid URL format")
    if not parts.scheme or not host:
        raise InvalidInput("Invalid URL format")
    if ":" in host or "[" in parts.netloc:
        try:
            ipaddress.IPv6Address(host)
        except ValueError:
            raise InvalidInput("Invalid URL format")
    elif _HOST_FORBIDDEN.search(host) or host.strip(".") == "":
        raise InvalidInput("Invalid URL format")
    return candidate


def submit_analysis(store: SQLiteAnalysisStore, user_id: Optional[str], image_url: str) -> AnalysisRecord:
    if not user_id:
        raise Unauthenticated("Not authenticated")
    url = validate_image_url(image_url)
    rec = store.create_analysis(str(uuid.uuid4()), user_id, url)
    logger.info("[submit] analysis_id=%s user_id=%s", rec.analysis_id, user_id)
    return rec


def get_analysis(store: SQLiteAnalysisStore, analysis_id: str, user_id: Optional[str]) -> Optional[AnalysisRecord]:
    # Absent and not-owned look the same to the caller.
    if not user_id:
        return None
    try:
        rec = store.get_analysis(analysis_id)
    except KeyError:
        return None
    if rec.user_id != user_id:
        return None
    return rec


def list_analyses(store: SQLiteAnalysisStore, user_id: Optional[str]) -> List[AnalysisRecord]:
    if not user_id:
        return []
    return store.list_analyses_by_user(user_id)


def request_analysis(store: SQLiteAnalysisStore, analysis_id: str, user_id: Optional[str]) -> AnalysisRecord:
    """Ownership check performed before the worker is scheduled."""
    rec = get_analysis(store, analysis_id, user_id)
    if rec is None:
        raise NotFound("Analysis not found")
    return rec


def remove_analysis(store: SQLiteAnalysisStore, analysis_id: str, user_id: Optional[str]) -> None:
    if not user_id:
        raise Unauthenticated("Not authenticated")
    if get_analysis(store, analysis_id, user_id) is None:
        raise NotFound("Not found")
    store.delete_analysis(analysis_id)
    logger.info("[remove] analysis_id=%s user_id=%s", analysis_id, user_id)
