"""Direct access to the content screens."""
from fastapi import APIRouter, Depends

from ..dependencies import PrincipalDep, get_crisis_detector, get_moderation_gate
from ..schemas import CrisisRead, CrisisRequest, ModerationRead, ModerationRequest
from ..services.moderation import CrisisDetector, ModerationGate, screen_for_crisis

router = APIRouter(prefix="/moderation", tags=["moderation"])


@router.post("/check", response_model=ModerationRead)
async def moderate(
    payload: ModerationRequest,
    principal: PrincipalDep,
    gate: ModerationGate = Depends(get_moderation_gate),
) -> ModerationRead:
    verdict = await gate.moderate(payload.text, payload.content_type)
    return ModerationRead(harmful=verdict.harmful, reason=verdict.reason)


@router.post("/crisis", response_model=CrisisRead)
async def detect_crisis(
    payload: CrisisRequest,
    principal: PrincipalDep,
    detector: CrisisDetector = Depends(get_crisis_detector),
) -> CrisisRead:
    result = await screen_for_crisis(detector, payload.text)
    return CrisisRead(is_crisis=result.is_crisis, confidence=result.confidence)
