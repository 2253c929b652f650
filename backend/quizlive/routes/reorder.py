"""Catalog endpoints that renumber periods and period questions."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quizlive.auth import require_admin
from quizlive.crud import get_event, get_period
from quizlive.database import get_session
from quizlive.errors import NotFoundError
from quizlive.reorder import reorder_period_questions, reorder_periods
from quizlive.schemas import PositionRead, ReorderRequest

logger = logging.getLogger(__name__)

router = APIRouter(tags=["reorder"])


@router.put("/events/{event_id}/periods/order", response_model=list[PositionRead])
async def order_periods(
    event_id: int,
    data: ReorderRequest,
    db: AsyncSession = Depends(get_session),
    admin_id: int = Depends(require_admin),
):
    if await get_event(db, event_id) is None:
        raise NotFoundError(f"Event {event_id} not found")
    periods = await reorder_periods(db, event_id, data.ids)
    logger.info("Admin %s reordered periods of event %s", admin_id, event_id)
    return [PositionRead(id=p.id, order_num=p.order_num) for p in periods]


@router.put("/periods/{period_id}/questions/order", response_model=list[PositionRead])
async def order_period_questions(
    period_id: int,
    data: ReorderRequest,
    db: AsyncSession = Depends(get_session),
    admin_id: int = Depends(require_admin),
):
    if await get_period(db, period_id) is None:
        raise NotFoundError(f"Period {period_id} not found")
    links = await reorder_period_questions(db, period_id, data.ids)
    logger.info("Admin %s reordered questions of period %s", admin_id, period_id)
    return [PositionRead(id=link.question_id, order_num=link.order_num) for link in links]
