"""Keyword screens and the never-failing crisis wrapper."""
import pytest

from echo_tree.services.moderation import (
    CrisisResult,
    KeywordCrisisDetector,
    KeywordModerationGate,
    screen_for_crisis,
)


@pytest.mark.asyncio
async def test_moderation_flags_harmful_terms_case_insensitively() -> None:
    gate = KeywordModerationGate(["hate", "kill you"])

    flagged = await gate.moderate("I HATE this", "reply")
    clean = await gate.moderate("You are doing well", "reply")

    assert flagged.harmful
    assert flagged.reason == "Contains potentially harmful content"
    assert not clean.harmful
    assert clean.reason is None


@pytest.mark.asyncio
async def test_crisis_detector_confidence() -> None:
    detector = KeywordCrisisDetector(["want to die"])

    assert await detector.detect_crisis("some days I want to die") == CrisisResult(True, 0.8)
    assert await detector.detect_crisis("just a long day") == CrisisResult(False, 0.1)


class BrokenDetector:
    async def detect_crisis(self, text: str) -> CrisisResult:
        raise RuntimeError("classifier offline")


@pytest.mark.asyncio
async def test_screen_for_crisis_swallows_detector_failures(caplog) -> None:
    result = await screen_for_crisis(BrokenDetector(), "anything")

    assert result == CrisisResult(is_crisis=False, confidence=0.0)
    assert "Crisis detector failed" in caplog.text
