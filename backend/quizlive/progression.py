"""Resolve which question is shown next.

Used only when the operator moves to the ``question`` screen.  The catalog
is read through its ``order_num`` columns:

* from ``waiting`` the first question of the first period is shown;
* from ``answer``, ``break`` or ``question_reading`` the next question of the
  current period is shown;
* from ``period_result`` the first question of the next period is shown.

Running out of questions is a normal outcome, reported as
:class:`NoFurtherQuestion` rather than an exception, because the operator
is expected to move to ``period_result`` or ``final_result`` instead.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from quizlive.errors import DataIntegrityError, NotFoundError, ValidationError
from quizlive.models import ActiveQuestion, Period, PeriodQuestion, QuizControl
from quizlive.reorder import PERIODS, PERIOD_QUESTIONS, find_unsettled
from quizlive.screens import Screen

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NoFurtherQuestion:
    reason: str
    suggested_screen: Optional[Screen] = None


Resolution = Union[ActiveQuestion, NoFurtherQuestion]


def _lowest(rows: list, scope: str):
    """Return the first of up to two rows ordered by ``order_num``.

    Two rows sharing the lowest position means the catalog ordering is
    corrupt, which is not something to guess around.
    """
    if not rows:
        return None
    if len(rows) > 1 and rows[0].order_num == rows[1].order_num:
        raise DataIntegrityError(
            f"Duplicate order_num {rows[0].order_num} in {scope}"
        )
    return rows[0]


async def _ensure_settled(db: AsyncSession, siblings, scope_id: int, scope: str) -> None:
    if await find_unsettled(db, siblings, scope_id):
        raise DataIntegrityError(
            f"{scope} has placeholder positions left by an unfinished reorder"
        )


async def first_period(db: AsyncSession, event_id: int) -> Optional[Period]:
    await _ensure_settled(db, PERIODS, event_id, f"event {event_id}")
    result = await db.execute(
        select(Period)
        .where(Period.event_id == event_id)
        .order_by(Period.order_num)
        .limit(2)
    )
    return _lowest(result.scalars().all(), f"event {event_id}")


async def next_period(db: AsyncSession, event_id: int, period_id: int) -> Optional[Period]:
    """Return the period following ``period_id`` or ``None`` after the last one."""
    current = await db.get(Period, period_id)
    if current is None or current.event_id != event_id:
        raise NotFoundError(f"Period {period_id} not found in event {event_id}")
    await _ensure_settled(db, PERIODS, event_id, f"event {event_id}")
    result = await db.execute(
        select(Period)
        .where(Period.event_id == event_id, Period.order_num > current.order_num)
        .order_by(Period.order_num)
        .limit(2)
    )
    return _lowest(result.scalars().all(), f"event {event_id}")


async def first_question_id(db: AsyncSession, period_id: int) -> Optional[int]:
    await _ensure_settled(db, PERIOD_QUESTIONS, period_id, f"period {period_id}")
    result = await db.execute(
        select(PeriodQuestion)
        .where(PeriodQuestion.period_id == period_id)
        .order_by(PeriodQuestion.order_num)
        .limit(2)
    )
    link = _lowest(result.scalars().all(), f"period {period_id}")
    return link.question_id if link else None


async def next_question_id(
    db: AsyncSession, period_id: int, question_id: int
) -> Optional[int]:
    """Return the question after ``question_id`` in the period, if any."""
    result = await db.execute(
        select(PeriodQuestion).where(
            PeriodQuestion.period_id == period_id,
            PeriodQuestion.question_id == question_id,
        )
    )
    current = result.scalar_one_or_none()
    if current is None:
        raise NotFoundError(
            f"Question {question_id} is not part of period {period_id}"
        )
    await _ensure_settled(db, PERIOD_QUESTIONS, period_id, f"period {period_id}")
    result = await db.execute(
        select(PeriodQuestion)
        .where(
            PeriodQuestion.period_id == period_id,
            PeriodQuestion.order_num > current.order_num,
        )
        .order_by(PeriodQuestion.order_num)
        .limit(2)
    )
    link = _lowest(result.scalars().all(), f"period {period_id}")
    return link.question_id if link else None


async def resolve_next_question(
    db: AsyncSession, control: QuizControl
) -> Resolution:
    """Work out the question to show when moving to ``question``."""
    screen = control.current_screen
    event_id = control.event_id

    if screen == Screen.WAITING:
        period = await first_period(db, event_id)
        if period is None:
            raise NotFoundError(f"Event {event_id} has no periods")
        question_id = await first_question_id(db, period.id)
        if question_id is None:
            return NoFurtherQuestion(f"Period {period.id} has no questions")
        return ActiveQuestion(period.id, question_id)

    position = control.position
    if position is None:
        raise DataIntegrityError(
            f"Quiz control for event {event_id} is on {screen.value} without a position"
        )

    if screen in (Screen.ANSWER, Screen.BREAK, Screen.QUESTION_READING):
        question_id = await next_question_id(
            db, position.period_id, position.question_id
        )
        if question_id is None:
            return NoFurtherQuestion(
                f"No question left in period {position.period_id}",
                Screen.PERIOD_RESULT,
            )
        return ActiveQuestion(position.period_id, question_id)

    if screen == Screen.PERIOD_RESULT:
        period = await next_period(db, event_id, position.period_id)
        if period is None:
            return NoFurtherQuestion(
                f"No period left after period {position.period_id}",
                Screen.FINAL_RESULT,
            )
        question_id = await first_question_id(db, period.id)
        if question_id is None:
            logger.warning("Period %s of event %s has no questions", period.id, event_id)
            return NoFurtherQuestion(f"Period {period.id} has no questions")
        return ActiveQuestion(period.id, question_id)

    raise ValidationError(f"Cannot resolve a next question from {screen.value}")
