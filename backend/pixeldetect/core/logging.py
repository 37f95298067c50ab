from __future__ import annotations

import logging
import sys


def setup_logging(level: int | str = logging.INFO, format_string: str | None = None) -> None:
    """Configure root logging to stdout and align uvicorn's loggers with it."""
    if isinstance(level, str):
        level = level.upper()
    if format_string is None:
        format_string = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=format_string, stream=sys.stdout, force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "backend.pixeldetect"):
        logging.getLogger(name).setLevel(level)
