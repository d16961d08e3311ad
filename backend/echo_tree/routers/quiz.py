"""Healer quiz endpoints."""
from fastapi import APIRouter, Depends

from ..dependencies import PrincipalDep, ensure_self_or_admin, get_quiz_engine
from ..schemas import QuizQuestionRead, QuizResult, QuizStatus, QuizSubmission
from ..services.quiz import QuizEngine

router = APIRouter(prefix="/quiz", tags=["quiz"])


@router.get("/questions", response_model=list[QuizQuestionRead])
async def list_questions(quiz: QuizEngine = Depends(get_quiz_engine)) -> list[dict]:
    return quiz.questions()


@router.post("/take", response_model=QuizResult)
async def take_quiz(
    payload: QuizSubmission,
    principal: PrincipalDep,
    quiz: QuizEngine = Depends(get_quiz_engine),
) -> QuizResult:
    """Grade a submission; a pass promotes the caller to healer."""

    attempt = await quiz.take_quiz(
        principal.user_id, [answer.model_dump() for answer in payload.answers]
    )
    return QuizResult(score=attempt.score, passed=attempt.passed, can_retake_at=attempt.can_retake_at)


@router.get("/{user_id}/status", response_model=QuizStatus)
async def quiz_status(
    user_id: int,
    principal: PrincipalDep,
    quiz: QuizEngine = Depends(get_quiz_engine),
) -> QuizStatus:
    ensure_self_or_admin(principal, user_id)

    view = await quiz.status(user_id)
    return QuizStatus(
        taken=view.taken,
        passed=view.passed,
        score=view.score,
        can_retake=view.can_retake,
        can_retake_at=view.can_retake_at,
        questions=view.questions,
    )
