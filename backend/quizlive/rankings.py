"""Standings computed from submitted answers.

Per participant we count correct answers, sum response times and count
answers, either over the whole event or over the questions of one period.
More correct answers rank higher; among equals the lower total response
time wins; remaining ties go to the lower participant id so a repeated
query always yields the same order.  Displays only show the top of the
table, but a participant's own entry is always looked up in the full
standings.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from sqlalchemy import and_, case, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from quizlive import crud
from quizlive.errors import NotFoundError, ValidationError
from quizlive.models import Answer, Participant, PeriodQuestion

LIVE_LIMIT = 10
FINAL_LIMIT = 20


@dataclass
class RankingEntry:
    user_id: int
    nickname: str
    correct_count: int
    total_response_time_ms: int
    answered_count: int
    rank: int = 0


@dataclass
class Ranking:
    entries: list[RankingEntry]
    me: Optional[RankingEntry] = None


@dataclass
class Rankings:
    event_ranking: list[RankingEntry]
    period_ranking: Optional[list[RankingEntry]] = None


@dataclass
class PeriodChampion:
    period_id: int
    period_name: str
    entry: RankingEntry


@dataclass
class PeriodResults:
    period_id: int
    period_name: str
    ranking: Ranking


@dataclass
class FinalResults:
    event_id: int
    event_name: str
    ranking: Ranking
    champions: list[PeriodChampion] = field(default_factory=list)


def standing_key(entry: RankingEntry) -> tuple:
    return (-entry.correct_count, entry.total_response_time_ms, entry.user_id)


def assign_ranks(entries: Iterable[RankingEntry]) -> list[RankingEntry]:
    """Sort ``entries`` into standings order and number them from 1."""
    ordered = sorted(entries, key=standing_key)
    for position, entry in enumerate(ordered, start=1):
        entry.rank = position
    return ordered


def cut(standings: list[RankingEntry], limit: int, user_id: Optional[int] = None) -> Ranking:
    """Keep the first ``limit`` entries, resolving ``user_id`` against all of them."""
    me = None
    if user_id is not None:
        me = next((e for e in standings if e.user_id == user_id), None)
    return Ranking(entries=standings[:limit], me=me)


async def compute_standings(
    db: AsyncSession, event_id: int, period_id: Optional[int] = None
) -> list[RankingEntry]:
    """Full, ranked standings of an event or of one of its periods."""
    correct = func.sum(case((Answer.is_correct == True, 1), else_=0))  # noqa: E712
    stmt = (
        select(
            Participant.id,
            Participant.nickname,
            correct,
            func.coalesce(func.sum(Answer.response_time_ms), 0),
            func.count(Answer.id),
        )
        .join(Answer, Answer.user_id == Participant.id)
        .where(Participant.event_id == event_id)
        .group_by(Participant.id, Participant.nickname)
    )
    if period_id is not None:
        stmt = stmt.join(
            PeriodQuestion,
            and_(
                PeriodQuestion.question_id == Answer.question_id,
                PeriodQuestion.period_id == period_id,
            ),
        )
    result = await db.execute(stmt)
    return assign_ranks(
        RankingEntry(
            user_id=user_id,
            nickname=nickname,
            correct_count=int(correct_count or 0),
            total_response_time_ms=int(total_ms or 0),
            answered_count=int(answered),
        )
        for user_id, nickname, correct_count, total_ms, answered in result.all()
    )


async def _period_of_event(db: AsyncSession, event_id: int, period_id: int):
    period = await crud.get_period(db, period_id)
    if period is None or period.event_id != event_id:
        raise NotFoundError(f"Period {period_id} not found in event {event_id}")
    return period


async def get_rankings(
    db: AsyncSession, event_id: int, period_id: Optional[int] = None
) -> Rankings:
    """Top of the event standings and, if asked, of one period."""
    period_ranking = None
    if period_id is not None:
        await _period_of_event(db, event_id, period_id)
        period_ranking = (await compute_standings(db, event_id, period_id))[:LIVE_LIMIT]
    event_ranking = (await compute_standings(db, event_id))[:LIVE_LIMIT]
    return Rankings(event_ranking=event_ranking, period_ranking=period_ranking)


async def get_period_results(
    db: AsyncSession, event_id: int, user_id: Optional[int] = None
) -> PeriodResults:
    """Standings of the period quiz control is positioned in."""
    control = await crud.get_quiz_control(db, event_id)
    if control is None:
        raise NotFoundError(f"Quiz control for event {event_id} not found")
    position = control.position
    if position is None:
        raise ValidationError("No period has been played yet", code="no_period")
    period = await _period_of_event(db, event_id, position.period_id)
    standings = await compute_standings(db, event_id, period.id)
    return PeriodResults(
        period_id=period.id,
        period_name=period.name,
        ranking=cut(standings, LIVE_LIMIT, user_id),
    )


async def get_period_champions(db: AsyncSession, event_id: int) -> list[PeriodChampion]:
    """Rank-1 entry of every period that received answers, in period order."""
    champions = []
    for period in await crud.get_periods_by_event(db, event_id):
        standings = await compute_standings(db, event_id, period.id)
        if standings:
            champions.append(PeriodChampion(period.id, period.name, standings[0]))
    return champions


async def get_final_results(
    db: AsyncSession, event_id: int, user_id: Optional[int] = None
) -> FinalResults:
    event = await crud.get_event(db, event_id)
    if event is None:
        raise NotFoundError(f"Event {event_id} not found")
    standings = await compute_standings(db, event_id)
    return FinalResults(
        event_id=event.id,
        event_name=event.name,
        ranking=cut(standings, FINAL_LIMIT, user_id),
        champions=await get_period_champions(db, event_id),
    )
