"""Healer competency quiz.

The question bank is an immutable table handed to :class:`QuizEngine` at
construction; nothing mutates it at runtime.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Mapping, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..clock import Clock, system_clock
from ..config import Settings
from ..errors import AlreadyPassed, Conflict, RetakeCooldown, ValidationError
from ..models import QuizAttempt
from .credentials import minutes_until
from .trust import TrustEvent, TrustStateMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuizQuestion:
    id: int
    question: str
    options: Tuple[str, ...]
    correct: int

    def public(self) -> dict:
        return {"id": self.id, "question": self.question, "options": list(self.options)}


@dataclass(frozen=True)
class QuestionBank:
    questions: Tuple[QuizQuestion, ...]

    def __post_init__(self) -> None:
        if not self.questions:
            raise ValueError("Question bank is empty")
        ids = [q.id for q in self.questions]
        if len(set(ids)) != len(ids):
            raise ValueError("Question ids must be unique")

    @property
    def weight(self) -> float:
        return 100 / len(self.questions)

    def get(self, question_id: int) -> Optional[QuizQuestion]:
        for question in self.questions:
            if question.id == question_id:
                return question
        return None

    def public(self) -> list[dict]:
        return [q.public() for q in self.questions]


HEALER_QUESTION_BANK = QuestionBank(
    questions=(
        QuizQuestion(
            id=1,
            question="When someone shares a difficult experience, the best response is?",
            options=(
                "Immediately offer advice and solutions",
                "Listen first, and express understanding and empathy",
                "Share a similar experience of your own",
                "Tell them to be strong",
            ),
            correct=1,
        ),
        QuizQuestion(
            id=2,
            question="As a Healer, your main role is?",
            options=(
                "Diagnose and treat psychological problems",
                "Give professional medical advice",
                "Offer support, understanding and empathy",
                "Criticise and correct wrong thinking",
            ),
            correct=2,
        ),
        QuizQuestion(
            id=3,
            question="If you come across content that may involve self-harm, you should?",
            options=(
                "Ignore it and let the person handle it",
                "Offer a professional diagnosis",
                "Express care and suggest seeking professional help",
                "Tell the person to stop",
            ),
            correct=2,
        ),
        QuizQuestion(
            id=4,
            question="Empathy means?",
            options=(
                "Fully agreeing with the other person's view",
                "Understanding and feeling the other person's emotions",
                "Providing solutions",
                "Changing the other person's mind",
            ),
            correct=1,
        ),
        QuizQuestion(
            id=5,
            question="As a Healer, replies should be?",
            options=(
                "As long and detailed as possible",
                "Short, supportive and free of judgement",
                "Full of advice",
                "Critical",
            ),
            correct=1,
        ),
    )
)


@dataclass(frozen=True)
class GradedQuiz:
    score: int
    passed: bool
    answers: list[dict]


def grade(bank: QuestionBank, answers: Iterable[Mapping[str, int]], pass_score: int) -> GradedQuiz:
    """Score a submission against the answer key.

    Unknown question ids and wrong answers earn nothing. A question answered
    more than once only counts its first answer.
    """

    seen: set[int] = set()
    earned = 0.0
    graded: list[dict] = []
    for answer in answers:
        question_id = answer["question_id"]
        question = bank.get(question_id)
        correct = (
            question is not None
            and question_id not in seen
            and answer["answer"] == question.correct
        )
        seen.add(question_id)
        if correct:
            earned += bank.weight
        graded.append({"question_id": question_id, "answer": answer["answer"], "correct": correct})

    score = min(100, int(round(earned)))
    return GradedQuiz(score=score, passed=score >= pass_score, answers=graded)


@dataclass(frozen=True)
class QuizStatusView:
    taken: bool
    can_retake: bool
    questions: list[dict]
    passed: Optional[bool] = None
    score: Optional[int] = None
    can_retake_at: Optional[datetime] = None


class QuizEngine:
    def __init__(
        self,
        session: AsyncSession,
        settings: Settings,
        trust: TrustStateMachine,
        bank: QuestionBank = HEALER_QUESTION_BANK,
        clock: Clock = system_clock,
    ) -> None:
        self.session = session
        self.settings = settings
        self.trust = trust
        self.bank = bank
        self.clock = clock

    def questions(self) -> list[dict]:
        return self.bank.public()

    async def _attempt_for(self, user_id: int, lock: bool = False) -> Optional[QuizAttempt]:
        stmt = select(QuizAttempt).where(QuizAttempt.user_id == user_id)
        if lock:
            stmt = stmt.with_for_update()
        result = await self.session.execute(stmt.execution_options(populate_existing=True))
        return result.scalar_one_or_none()

    async def take_quiz(self, user_id: int, answers: Sequence[Mapping[str, int]]) -> QuizAttempt:
        if not answers:
            raise ValidationError("answers array is required")

        now = self.clock.now()
        existing = await self._attempt_for(user_id, lock=True)
        if existing is not None and existing.passed:
            raise AlreadyPassed()
        if existing is not None and existing.can_retake_at is not None and existing.can_retake_at > now:
            raise RetakeCooldown(minutes_until(existing.can_retake_at, now))

        graded = grade(self.bank, answers, self.settings.quiz_pass_score)
        can_retake_at = None if graded.passed else now + timedelta(hours=self.settings.quiz_retake_hours)

        attempt = existing or QuizAttempt(user_id=user_id)
        attempt.score = graded.score
        attempt.passed = graded.passed
        attempt.answers = graded.answers
        attempt.taken_at = now
        attempt.can_retake_at = can_retake_at
        if existing is None:
            self.session.add(attempt)

        try:
            await self.session.flush()
            if graded.passed:
                await self.trust.apply(user_id, TrustEvent.QUIZ_PASSED)
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            raise Conflict("Another quiz attempt is being recorded") from exc

        logger.info(
            "User %s scored %s on the healer quiz (%s)",
            user_id, graded.score, "passed" if graded.passed else "failed",
        )
        return attempt

    async def status(self, user_id: int) -> QuizStatusView:
        attempt = await self._attempt_for(user_id)
        if attempt is None:
            return QuizStatusView(taken=False, can_retake=True, questions=self.questions())

        now = self.clock.now()
        return QuizStatusView(
            taken=True,
            passed=attempt.passed,
            score=attempt.score,
            can_retake=not attempt.passed
            and (attempt.can_retake_at is None or attempt.can_retake_at <= now),
            can_retake_at=attempt.can_retake_at,
            questions=self.questions(),
        )
