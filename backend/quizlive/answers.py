"""Accept participants' answers.

The question being answered is always the one quiz control points at; the
client only says which choice it picked.  A participant answers a question
once.  The ``(user_id, question_id)`` unique constraint is what guarantees
that under concurrent submissions; the lookup beforehand only turns the
common case into a clean error without a failed insert.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from quizlive import crud
from quizlive.displays import get_display_for_question
from quizlive.errors import (
    AlreadyAnsweredError,
    ChoiceMismatchError,
    NotFoundError,
    StaleQuestionError,
    TransientError,
)
from quizlive.models import Answer, Choice
from quizlive.screens import ANSWERABLE_SCREENS, Screen

logger = logging.getLogger(__name__)


def response_time_ms(displayed_at: datetime, answered_at: datetime) -> int:
    """Milliseconds between the question going on screen and the answer."""
    delta = answered_at - displayed_at
    return max(0, delta // timedelta(milliseconds=1))


async def get_answer(db: AsyncSession, user_id: int, question_id: int) -> Optional[Answer]:
    result = await db.execute(
        select(Answer).where(Answer.user_id == user_id, Answer.question_id == question_id)
    )
    return result.scalar_one_or_none()


async def submit_answer(
    db: AsyncSession,
    user_id: int,
    event_id: int,
    choice_id: int,
    now: Optional[datetime] = None,
) -> Answer:
    """Record ``user_id``'s answer to the question currently on display.

    Raises :class:`StaleQuestionError` when no question is accepting answers,
    :class:`AlreadyAnsweredError` on a repeat submission and
    :class:`ChoiceMismatchError` when the choice belongs to another question.
    """
    participant = await crud.get_participant(db, user_id)
    if participant is None or participant.event_id != event_id:
        raise NotFoundError(f"Participant {user_id} not found in event {event_id}")

    control = await crud.get_quiz_control(db, event_id)
    if control is None:
        raise NotFoundError(f"Quiz control for event {event_id} not found")
    active = control.active_question
    if active is None or control.current_screen not in ANSWERABLE_SCREENS:
        raise StaleQuestionError("No question is accepting answers right now")

    display = await get_display_for_question(db, active.period_id, active.question_id)
    if display is None or display.closed_at is not None:
        raise StaleQuestionError(f"Question {active.question_id} is closed")

    if await get_answer(db, user_id, active.question_id) is not None:
        raise AlreadyAnsweredError(f"Question {active.question_id} already answered")

    choice = await db.get(Choice, choice_id)
    if choice is None or choice.question_id != active.question_id:
        raise ChoiceMismatchError(
            f"Choice {choice_id} does not belong to question {active.question_id}"
        )

    answered_at = now or datetime.utcnow()
    answer = Answer(
        user_id=user_id,
        question_id=active.question_id,
        choice_id=choice.id,
        is_correct=choice.is_correct,
        response_time_ms=response_time_ms(display.displayed_at, answered_at),
        answered_at=answered_at,
    )
    db.add(answer)
    try:
        await db.commit()
    except IntegrityError as exc:
        # A concurrent submission from the same participant won the insert.
        await db.rollback()
        raise AlreadyAnsweredError(
            f"Question {active.question_id} already answered"
        ) from exc
    except OperationalError as exc:
        await db.rollback()
        raise TransientError(f"Could not store answer: {exc}") from exc
    await db.refresh(answer)
    logger.info(
        "Participant %s answered question %s in %sms",
        user_id,
        answer.question_id,
        answer.response_time_ms,
    )
    return answer


@dataclass
class AnswerResult:
    question_id: int
    correct_choice_id: Optional[int]
    answer: Optional[Answer]


async def get_answer_result(db: AsyncSession, user_id: int, event_id: int) -> AnswerResult:
    """Return ``user_id``'s answer to the active question.

    The correct choice is only disclosed once the answer screen is up.
    """
    control = await crud.get_quiz_control(db, event_id)
    if control is None:
        raise NotFoundError(f"Quiz control for event {event_id} not found")
    active = control.active_question
    if active is None:
        raise StaleQuestionError("No question is on display right now")
    correct_choice_id = None
    if control.current_screen == Screen.ANSWER:
        result = await db.execute(
            select(Choice).where(
                Choice.question_id == active.question_id,
                Choice.is_correct == True,  # noqa: E712
            )
        )
        correct = result.scalars().first()
        correct_choice_id = correct.id if correct else None
    return AnswerResult(
        question_id=active.question_id,
        correct_choice_id=correct_choice_id,
        answer=await get_answer(db, user_id, active.question_id),
    )
