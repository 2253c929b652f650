"""Display windows of shown questions.

A :class:`~quizlive.models.QuestionDisplay` row is opened when a question
goes on screen and closed when the answer is revealed.  Response times are
measured from its ``displayed_at``, so a period may never have two open
windows at once; finding one is reported, not repaired.  None of these
helpers commit: the caller commits together with the quiz control update.
"""

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from quizlive.errors import DataIntegrityError
from quizlive.models import QuestionDisplay

logger = logging.getLogger(__name__)


async def get_open_display(db: AsyncSession, period_id: int) -> Optional[QuestionDisplay]:
    result = await db.execute(
        select(QuestionDisplay).where(
            QuestionDisplay.period_id == period_id,
            QuestionDisplay.closed_at.is_(None),
        )
    )
    displays = result.scalars().all()
    if len(displays) > 1:
        logger.error("Period %s has %s open display windows", period_id, len(displays))
        raise DataIntegrityError(f"Period {period_id} has more than one open display")
    return displays[0] if displays else None


async def get_display_for_question(
    db: AsyncSession, period_id: int, question_id: int
) -> Optional[QuestionDisplay]:
    """Return the most recent window of ``question_id`` in ``period_id``."""
    result = await db.execute(
        select(QuestionDisplay)
        .where(
            QuestionDisplay.period_id == period_id,
            QuestionDisplay.question_id == question_id,
        )
        .order_by(QuestionDisplay.displayed_at.desc(), QuestionDisplay.id.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def open_display(
    db: AsyncSession, period_id: int, question_id: int, now: datetime
) -> QuestionDisplay:
    """Start the display window of a question."""
    existing = await get_open_display(db, period_id)
    if existing is not None:
        logger.error(
            "Refusing to show question %s: question %s is still open in period %s",
            question_id,
            existing.question_id,
            period_id,
        )
        raise DataIntegrityError(
            f"Question {existing.question_id} is still on display in period {period_id}"
        )
    display = QuestionDisplay(
        question_id=question_id, period_id=period_id, displayed_at=now
    )
    db.add(display)
    await db.flush()
    return display


async def close_display(db: AsyncSession, period_id: int, now: datetime) -> QuestionDisplay:
    """Close the open display window of ``period_id``."""
    display = await get_open_display(db, period_id)
    if display is None:
        logger.error("No open display window to close in period %s", period_id)
        raise DataIntegrityError(f"No question is on display in period {period_id}")
    display.closed_at = now
    db.add(display)
    await db.flush()
    return display
