"""Operator endpoints driving an event from screen to screen."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quizlive.auth import get_current_participant, require_admin
from quizlive.control import get_control, reset_event, transition
from quizlive.database import get_session
from quizlive.models import Participant
from quizlive.schemas import QuizControlRead, QuizStatusRead, TransitionRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["control"])


@router.get("/{event_id}/control", response_model=QuizControlRead)
async def read_control(
    event_id: int,
    db: AsyncSession = Depends(get_session),
    admin_id: int = Depends(require_admin),
):
    return await get_control(db, event_id)


@router.post("/{event_id}/control/transition", response_model=QuizControlRead)
async def change_screen(
    event_id: int,
    data: TransitionRequest,
    db: AsyncSession = Depends(get_session),
    admin_id: int = Depends(require_admin),
):
    control = await transition(db, event_id, data.screen, expected_version=data.version)
    logger.info("Admin %s moved event %s to %s", admin_id, event_id, control.screen)
    return control


@router.post("/{event_id}/control/reset", response_model=QuizControlRead)
async def reset(
    event_id: int,
    db: AsyncSession = Depends(get_session),
    admin_id: int = Depends(require_admin),
):
    control = await reset_event(db, event_id)
    logger.info("Admin %s reset event %s", admin_id, event_id)
    return control


@router.get("/{event_id}/status", response_model=QuizStatusRead)
async def quiz_status(
    event_id: int,
    db: AsyncSession = Depends(get_session),
    participant: Participant = Depends(get_current_participant),
):
    control = await get_control(db, event_id)
    active = control.active_question
    return QuizStatusRead(
        event_id=event_id,
        screen=control.screen,
        period_id=active.period_id if active else None,
        question_id=active.question_id if active else None,
    )
