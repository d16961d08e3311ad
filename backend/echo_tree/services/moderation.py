"""Content screens consumed by the authoring paths.

Both screens are narrow async interfaces so a model-backed classifier can
replace the keyword implementations without touching the callers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ModerationResult:
    harmful: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class CrisisResult:
    is_crisis: bool
    confidence: float


class ModerationGate(Protocol):
    async def moderate(self, text: str, content_type: str = "message") -> ModerationResult:
        ...


class CrisisDetector(Protocol):
    async def detect_crisis(self, text: str) -> CrisisResult:
        ...


class KeywordModerationGate:
    """Flags text containing any configured harmful term."""

    reason = "Contains potentially harmful content"

    def __init__(self, terms: Iterable[str]) -> None:
        self.terms = tuple(term.lower() for term in terms if term)

    async def moderate(self, text: str, content_type: str = "message") -> ModerationResult:
        lowered = (text or "").lower()
        if any(term in lowered for term in self.terms):
            return ModerationResult(harmful=True, reason=self.reason)
        return ModerationResult(harmful=False, reason=None)


class KeywordCrisisDetector:
    """Flags self-harm indicators; confidence is fixed per outcome."""

    match_confidence = 0.8
    baseline_confidence = 0.1

    def __init__(self, terms: Iterable[str]) -> None:
        self.terms = tuple(term.lower() for term in terms if term)

    async def detect_crisis(self, text: str) -> CrisisResult:
        lowered = (text or "").lower()
        if any(term in lowered for term in self.terms):
            return CrisisResult(is_crisis=True, confidence=self.match_confidence)
        return CrisisResult(is_crisis=False, confidence=self.baseline_confidence)


async def screen_for_crisis(detector: CrisisDetector, text: str) -> CrisisResult:
    """Run the crisis screen without ever failing the caller.

    A broken detector is logged and treated as "no crisis" so message
    persistence never depends on it.
    """

    try:
        result = await detector.detect_crisis(text)
    except Exception:
        logger.exception("Crisis detector failed; storing message unflagged")
        return CrisisResult(is_crisis=False, confidence=0.0)

    if result.is_crisis:
        logger.warning("Crisis indicators detected (confidence %.2f)", result.confidence)
    return result
