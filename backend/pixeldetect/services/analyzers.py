from __future__ import annotations

import random
import time
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit


X_HOSTS = ("pbs.twimg.com", "twitter.com", "x.com")


class AnalysisFailure(RuntimeError):
    """Raised by an analyzer when an image cannot be analyzed."""


@dataclass(frozen=True)
class AnalysisResult:
    is_edited: bool
    is_ai_generated: bool
    is_photoshopped: bool
    confidence: int
    details_markdown: str
    flags: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AnalysisResult":
        return cls(
            is_edited=bool(data["is_edited"]),
            is_ai_generated=bool(data["is_ai_generated"]),
            is_photoshopped=bool(data["is_photoshopped"]),
            confidence=int(data["confidence"]),
            details_markdown=str(data["details_markdown"]),
            flags=[str(f) for f in data.get("flags") or []],
        )


def dominant_label(result: AnalysisResult) -> str:
    if result.is_ai_generated:
        return "AI Generated"
    if result.is_photoshopped:
        return "Photoshopped"
    if result.is_edited:
        return "Edited"
    return "Authentic"


def source_platform(image_url: str) -> str:
    host = (urlsplit(image_url).hostname or "").lower()
    if any(host == h or host.endswith("." + h) for h in X_HOSTS):
        return "X (Twitter)"
    return "External Source"


class Analyzer(ABC):
    """A forensic detector: given an image URL, decide how it was produced."""

    name: str = "base"

    @abstractmethod
    def analyze(self, image_url: str) -> AnalysisResult:
        raise NotImplementedError


class SimulatedForensicAnalyzer(Analyzer):
    """Placeholder detector producing randomized, plausible-looking reports.

    No pixels are fetched. One uniform draw decides the dominant label
    (AI generated above 0.7, photoshopped above 0.4, basic edits above 0.3,
    otherwise authentic) and a second draw gives a confidence in [65, 95).
    """

    name = "simulated"

    def __init__(self, delay_seconds: float = 2.5, rng: Optional[random.Random] = None):
        self.delay_seconds = delay_seconds
        self.rng = rng or random.Random()

    def analyze(self, image_url: str) -> AnalysisResult:
        if self.delay_seconds > 0:
            time.sleep(self.delay_seconds)

        r = self.rng.random()
        is_ai_generated = r > 0.7
        is_photoshopped = not is_ai_generated and r > 0.4
        is_edited = is_photoshopped or r > 0.3
        confidence = 65 + int(self.rng.random() * 30)

        flags: List[str] = []
        lines = ["## Forensic Analysis Report", ""]

        if is_ai_generated:
            flags += ["AI_GENERATED", "SYNTHETIC_PATTERNS"]
            lines += [
                "### AI Generation Detected",
                "- **Synthetic texture patterns** found in background regions",
                "- **Consistent noise distribution** inconsistent with camera sensors",
                "- **Frequency domain anomalies** suggest diffusion model artifacts",
                "",
            ]
        elif is_photoshopped:
            flags += ["PHOTOSHOPPED", "CLONE_STAMP_DETECTED"]
            lines += [
                "### Photo Manipulation Detected",
                "- **Clone stamp artifacts** detected in image regions",
                "- **Edge inconsistencies** around subject boundaries",
                "- **JPEG compression** shows multiple save operations",
                "",
            ]
        elif is_edited:
            flags.append("BASIC_EDITS")
            lines += [
                "### Minor Edits Detected",
                "- **Color grading adjustments** applied",
                "- **Exposure corrections** detected",
                "- **Standard filters** may have been applied",
                "",
            ]
        else:
            flags.append("AUTHENTIC")
            lines += [
                "### Image Appears Authentic",
                "- **No manipulation artifacts** detected",
                "- **Consistent noise patterns** matching camera signatures",
                "- **EXIF data integrity** verified",
                "",
            ]

        lines += [
            "### Metadata",
            f"- **Source Platform:** {source_platform(image_url)}",
            f"- **Analysis Confidence:** {confidence}%",
            f"- **Processing Time:** {self.delay_seconds:g} seconds",
        ]

        return AnalysisResult(
            is_edited=is_edited,
            is_ai_generated=is_ai_generated,
            is_photoshopped=is_photoshopped,
            confidence=confidence,
            details_markdown="\n".join(lines) + "\n",
            flags=flags,
        )


_BACKENDS: Dict[str, Callable[..., Analyzer]] = {
    SimulatedForensicAnalyzer.name: SimulatedForensicAnalyzer,
}


def get_analyzer(name: str, **kwargs: Any) -> Analyzer:
    try:
        factory = _BACKENDS[name.strip().lower()]
    except KeyError:
        raise ValueError(f"Unknown analyzer backend: {name!r} (available: {', '.join(sorted(_BACKENDS))})")
    return factory(**kwargs)
