"""Operator-driven progression of a quiz event.

:func:`transition` is the single entry point that moves an event from one
screen to the next.  It validates the move, resolves the next question when
entering ``question``, writes quiz control with a version check and then
opens or closes the display window, all inside one database transaction.  Two
operators clicking at once therefore cannot both succeed: the loser gets a
:class:`~quizlive.errors.ControlConflictError` and nothing it did is kept.
"""

import logging
from datetime import datetime
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from quizlive import crud
from quizlive.displays import close_display, open_display
from quizlive.errors import (
    ControlConflictError,
    DataIntegrityError,
    NoFurtherQuestionError,
    NotFoundError,
    QuizError,
    TransientError,
)
from quizlive.models import QuizControl
from quizlive.progression import NoFurtherQuestion, resolve_next_question
from quizlive.screens import Screen, parse_screen, validate_transition

logger = logging.getLogger(__name__)


async def get_control(db: AsyncSession, event_id: int) -> QuizControl:
    control = await crud.get_quiz_control(db, event_id)
    if control is None:
        logger.error("Quiz control for event %s is missing", event_id)
        raise NotFoundError(f"Quiz control for event {event_id} not found")
    return control


async def _plan_transition(
    db: AsyncSession, control: QuizControl, requested: Screen, now: datetime
) -> dict:
    """Return the control columns a move to ``requested`` writes."""
    values = {"screen": requested.value}

    if requested == Screen.QUESTION:
        resolution = await resolve_next_question(db, control)
        if isinstance(resolution, NoFurtherQuestion):
            suggested = resolution.suggested_screen
            raise NoFurtherQuestionError(
                resolution.reason, suggested.value if suggested else None
            )
        values.update(
            period_id=resolution.period_id,
            question_id=resolution.question_id,
            displayed_at=now,
            closed_at=None,
        )

    elif requested == Screen.ANSWER:
        if control.active_question is None:
            raise DataIntegrityError(
                f"Event {control.event_id} is on {control.screen} without a question"
            )
        values["closed_at"] = now

    return values


async def _record_display(
    db: AsyncSession, control: QuizControl, requested: Screen, now: datetime
) -> None:
    """Open or close the display window of a move already written to control."""
    if requested == Screen.QUESTION:
        await open_display(db, control.period_id, control.question_id, now)
    elif requested == Screen.ANSWER:
        await close_display(db, control.period_id, now)


async def transition(
    db: AsyncSession,
    event_id: int,
    requested: Union[Screen, str],
    expected_version: Optional[int] = None,
    now: Optional[datetime] = None,
) -> QuizControl:
    """Move ``event_id`` to the ``requested`` screen.

    ``expected_version`` lets a client insist on the state it last saw.
    Returns the updated quiz control.
    """
    if not isinstance(requested, Screen):
        requested = parse_screen(requested)
    control = await get_control(db, event_id)
    if expected_version is not None and expected_version != control.version:
        raise ControlConflictError(
            f"Quiz state is at version {control.version}, not {expected_version}"
        )
    current = control.current_screen
    validate_transition(current, requested)

    now = now or datetime.utcnow()
    try:
        values = await _plan_transition(db, control, requested, now)
        # Control goes first: a move that lost a race stops at the version
        # check before it touches display windows.
        await crud.update_quiz_control(db, control, **values)
        await _record_display(db, control, requested, now)
        await db.commit()
    except QuizError:
        await db.rollback()
        raise
    except IntegrityError as exc:
        await db.rollback()
        logger.error("Transition of event %s broke a constraint: %s", event_id, exc)
        raise DataIntegrityError(
            f"Transition of event {event_id} to {requested.value} broke a constraint"
        ) from exc
    except OperationalError as exc:
        await db.rollback()
        raise TransientError(f"Could not store transition: {exc}") from exc

    logger.info(
        "Event %s moved from %s to %s (period %s, question %s)",
        event_id,
        current.value,
        requested.value,
        control.period_id,
        control.question_id,
    )
    return control


async def reset_event(db: AsyncSession, event_id: int) -> QuizControl:
    """Return an event to ``waiting`` and drop everything recorded while it ran."""
    control = await get_control(db, event_id)
    try:
        await crud.delete_event_progress(db, event_id)
        await crud.update_quiz_control(
            db,
            control,
            screen=Screen.WAITING.value,
            period_id=None,
            question_id=None,
            displayed_at=None,
            closed_at=None,
        )
        await db.commit()
    except QuizError:
        await db.rollback()
        raise
    except OperationalError as exc:
        await db.rollback()
        raise TransientError(f"Could not reset event {event_id}: {exc}") from exc
    logger.info("Event %s reset to waiting", event_id)
    return control
