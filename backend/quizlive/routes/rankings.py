"""Standings for the operator console and result screens."""

from typing import Optional
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quizlive.auth import get_current_participant, require_admin
from quizlive.database import get_session
from quizlive.models import Participant
from quizlive.rankings import get_final_results, get_period_results, get_rankings
from quizlive.schemas import (
    FinalResultsRead,
    PeriodChampionRead,
    PeriodResultsRead,
    RankingEntryRead,
    RankingsRead,
)

router = APIRouter(prefix="/events", tags=["rankings"])


def _entries(entries) -> list[RankingEntryRead]:
    return [RankingEntryRead.model_validate(e) for e in entries]


def _entry(entry) -> Optional[RankingEntryRead]:
    return RankingEntryRead.model_validate(entry) if entry is not None else None


@router.get("/{event_id}/rankings", response_model=RankingsRead)
async def rankings(
    event_id: int,
    period_id: Optional[int] = None,
    db: AsyncSession = Depends(get_session),
    admin_id: int = Depends(require_admin),
):
    data = await get_rankings(db, event_id, period_id)
    return RankingsRead(
        event_id=event_id,
        period_id=period_id,
        period_ranking=(
            _entries(data.period_ranking) if data.period_ranking is not None else None
        ),
        event_ranking=_entries(data.event_ranking),
    )


@router.get("/{event_id}/results/period", response_model=PeriodResultsRead)
async def period_results(
    event_id: int,
    db: AsyncSession = Depends(get_session),
    participant: Participant = Depends(get_current_participant),
):
    data = await get_period_results(db, event_id, participant.id)
    return PeriodResultsRead(
        event_id=event_id,
        period_id=data.period_id,
        period_name=data.period_name,
        ranking=_entries(data.ranking.entries),
        me=_entry(data.ranking.me),
    )


@router.get("/{event_id}/results/final", response_model=FinalResultsRead)
async def final_results(
    event_id: int,
    db: AsyncSession = Depends(get_session),
    participant: Participant = Depends(get_current_participant),
):
    data = await get_final_results(db, event_id, participant.id)
    return FinalResultsRead(
        event_id=data.event_id,
        event_name=data.event_name,
        ranking=_entries(data.ranking.entries),
        me=_entry(data.ranking.me),
        champions=[
            PeriodChampionRead(
                period_id=c.period_id,
                period_name=c.period_name,
                user_id=c.entry.user_id,
                nickname=c.entry.nickname,
                correct_count=c.entry.correct_count,
            )
            for c in data.champions
        ],
    )
