"""Quiz session lifecycle: creation, answer checks and one-time completion."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from .errors import Conflict, NotFound
from .leaderboard_services import record_completion
from .models import LeaderboardEntry, Question, QuizSession
from .profile_services import record_quiz_totals
from .question_services import require_category, sample, serialize_question

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnswerOutcome:
    question_index: int
    is_correct: bool
    points: int
    next_index: int


@dataclass
class CompletionResult:
    session: QuizSession
    leaderboard_entry: LeaderboardEntry | None = None
    failed_side_effects: list[str] = field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.failed_side_effects)


def points_per_correct_answer() -> int:
    return max(1, int(getattr(settings, "TRIVIA_POINTS_PER_CORRECT_ANSWER", 100)))


def answers_match(provided: object, canonical: object) -> bool:
    return str(provided or "").strip().upper() == str(canonical or "").strip().upper()


def _non_negative_int(value: object, *, name: str) -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{name} must be a non-negative integer.")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be a non-negative integer.") from exc
    if number < 0:
        raise ValidationError(f"{name} must be a non-negative integer.")
    return number


def get_session(session_id: object) -> QuizSession:
    try:
        pk = int(session_id)
    except (TypeError, ValueError) as exc:
        raise NotFound(f"Unknown quiz session: {session_id!r}.") from exc
    session = QuizSession.objects.filter(pk=pk).first()
    if session is None:
        raise NotFound(f"Unknown quiz session: {session_id!r}.")
    return session


def create_session(*, user, category: object, total_questions: object) -> QuizSession:
    category_key = require_category(category)
    requested = _non_negative_int(total_questions, name="total_questions")
    if requested == 0:
        raise ValidationError("total_questions must be at least 1.")

    questions = sample(category_key, requested)
    if not questions:
        raise ValidationError(f"No questions available for {category_key}.")
    return QuizSession.objects.create(
        user=user,
        category=category_key,
        total_questions=len(questions),
        question_ids=[question.pk for question in questions],
    )


def session_questions(session: QuizSession) -> list[Question]:
    by_id = Question.objects.in_bulk(list(session.question_ids or []))
    return [by_id[pk] for pk in session.question_ids or [] if pk in by_id]


def question_at(session: QuizSession, question_index: object) -> Question:
    index = _non_negative_int(question_index, name="question_index")
    question_ids = list(session.question_ids or [])
    if index >= len(question_ids):
        raise ValidationError(f"question_index must be below {len(question_ids)}.")
    question = Question.objects.filter(pk=question_ids[index]).first()
    if question is None:
        raise NotFound(f"Question {question_ids[index]} is no longer available.")
    return question


@transaction.atomic
def submit_answer(*, session_id: object, provided_text: object, question_index: object) -> AnswerOutcome:
    """Check an answer and advance the session pointer.

    Score fields are left alone; the completion write carries the final totals.
    """
    session = get_session(session_id)
    session = QuizSession.objects.select_for_update().get(pk=session.pk)
    if session.is_completed:
        raise Conflict("Quiz session is already completed.")

    question = question_at(session, question_index)
    index = int(question_index)
    is_correct = answers_match(provided_text, question.answer)

    answers = dict(session.answers_json or {})
    answers[str(index)] = is_correct
    session.answers_json = answers
    session.current_index = max(session.current_index, index + 1)
    session.save(update_fields=["answers_json", "current_index", "updated_at"])

    return AnswerOutcome(
        question_index=index,
        is_correct=is_correct,
        points=points_per_correct_answer() if is_correct else 0,
        next_index=session.current_index,
    )


def _validate_final_totals(session: QuizSession, final_score: object, final_correct_answers: object) -> tuple[int, int]:
    score = _non_negative_int(final_score, name="score")
    correct = _non_negative_int(final_correct_answers, name="correct_answers")
    if correct > session.total_questions:
        raise ValidationError("correct_answers cannot exceed total_questions.")
    if score > session.total_questions * points_per_correct_answer():
        raise ValidationError("score exceeds the maximum for this session.")
    return score, correct


@transaction.atomic
def _mark_completed(session_id: int, final_score: object, final_correct_answers: object) -> QuizSession:
    session = QuizSession.objects.select_for_update().get(pk=session_id)
    if session.is_completed:
        raise Conflict("Quiz session is already completed.")
    score, correct = _validate_final_totals(session, final_score, final_correct_answers)
    session.score = score
    session.correct_answers = correct
    session.status = QuizSession.Status.COMPLETED
    session.completed_at = timezone.now()
    session.save(update_fields=["score", "correct_answers", "status", "completed_at", "updated_at"])
    return session


def complete_session(
    *,
    session_id: object,
    final_score: object,
    final_correct_answers: object,
) -> CompletionResult:
    """Finalize a session, then update the profile totals and the leaderboard.

    The completion write commits on its own. Each side effect runs afterwards in
    its own transaction; a failure there is logged and reported on the result
    while the session stays completed.
    """
    session = get_session(session_id)
    session = _mark_completed(session.pk, final_score, final_correct_answers)
    result = CompletionResult(session=session)

    try:
        with transaction.atomic():
            record_quiz_totals(user=session.user, score=session.score)
    except Exception:
        logger.warning("Profile totals update failed for quiz session %s", session.pk, exc_info=True)
        result.failed_side_effects.append("profile_totals")

    try:
        result.leaderboard_entry = record_completion(
            user=session.user,
            category=session.category,
            score=session.score,
            session=session,
            completed_on=timezone.localdate(session.completed_at),
        )
    except Exception:
        logger.warning("Leaderboard entry failed for quiz session %s", session.pk, exc_info=True)
        result.failed_side_effects.append("leaderboard_entry")

    return result


def session_payload(session: QuizSession, *, include_questions: bool = False) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "id": session.pk,
        "user_id": session.user_id,
        "category": session.category,
        "total_questions": session.total_questions,
        "score": session.score,
        "correct_answers": session.correct_answers,
        "status": session.status,
        "is_completed": session.is_completed,
        "current_index": session.current_index,
        "completed_at": session.completed_at.isoformat() if session.completed_at else None,
    }
    if include_questions:
        payload["questions"] = [serialize_question(question) for question in session_questions(session)]
    return payload
