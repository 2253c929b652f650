"""Asynchronous data access helpers shared by the engine modules.

Each function wraps one database operation using SQLModel and SQLAlchemy.
Quiz control is only ever written through :func:`update_quiz_control`,
which applies the change only if nobody else wrote the row since it was
read.
"""

import logging
from datetime import datetime

from sqlalchemy import update
from sqlalchemy.orm.attributes import set_committed_value
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select, delete

from quizlive.errors import ControlConflictError
from quizlive.models import (
    Answer,
    Event,
    Participant,
    Period,
    QuestionDisplay,
    QuizControl,
)

logger = logging.getLogger(__name__)


async def get_event(db: AsyncSession, event_id: int) -> Event | None:
    return await db.get(Event, event_id)


async def get_participant(db: AsyncSession, user_id: int) -> Participant | None:
    """Load a participant by primary key."""
    return await db.get(Participant, user_id)


async def get_period(db: AsyncSession, period_id: int) -> Period | None:
    return await db.get(Period, period_id)


async def get_periods_by_event(db: AsyncSession, event_id: int) -> list[Period]:
    """Return the event's periods in running order."""
    result = await db.execute(
        select(Period).where(Period.event_id == event_id).order_by(Period.order_num)
    )
    return result.scalars().all()


async def get_quiz_control(db: AsyncSession, event_id: int) -> QuizControl | None:
    """Return the event's quiz control as currently stored."""
    result = await db.execute(
        select(QuizControl)
        .where(QuizControl.event_id == event_id)
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def update_quiz_control(
    db: AsyncSession, control: QuizControl, **values
) -> QuizControl:
    """Apply ``values`` to quiz control if it is still at ``control.version``.

    Does not commit.  Raises :class:`ControlConflictError` when another
    writer has bumped the version in the meantime.
    """
    values.setdefault("updated_at", datetime.utcnow())
    result = await db.execute(
        update(QuizControl)
        .where(
            QuizControl.id == control.id,
            QuizControl.version == control.version,
        )
        .values(version=control.version + 1, **values)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        logger.info(
            "Quiz control of event %s changed concurrently (expected version %s)",
            control.event_id,
            control.version,
        )
        raise ControlConflictError(
            "Quiz state changed while this request was processed; reload and retry"
        )
    # Mirror the write on the loaded object without scheduling another UPDATE.
    values["version"] = control.version + 1
    for key, value in values.items():
        set_committed_value(control, key, value)
    return control


async def delete_event_progress(db: AsyncSession, event_id: int) -> None:
    """Delete displays, answers and participants of an event.  Does not commit."""
    period_ids = select(Period.id).where(Period.event_id == event_id)
    user_ids = select(Participant.id).where(Participant.event_id == event_id)
    await db.execute(
        delete(QuestionDisplay).where(QuestionDisplay.period_id.in_(period_ids))
    )
    await db.execute(delete(Answer).where(Answer.user_id.in_(user_ids)))
    await db.execute(delete(Participant).where(Participant.event_id == event_id))
