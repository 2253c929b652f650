"""Schemas for standings, period results and the final leaderboard."""

from typing import Optional

from pydantic import BaseModel, ConfigDict


class RankingEntryRead(BaseModel):
    rank: int
    user_id: int
    nickname: str
    correct_count: int
    total_response_time_ms: int
    answered_count: int

    model_config = ConfigDict(from_attributes=True)


class RankingsRead(BaseModel):
    event_id: int
    period_id: Optional[int] = None
    period_ranking: Optional[list[RankingEntryRead]] = None
    event_ranking: list[RankingEntryRead]


class PeriodResultsRead(BaseModel):
    event_id: int
    period_id: int
    period_name: str
    ranking: list[RankingEntryRead]
    me: Optional[RankingEntryRead] = None


class PeriodChampionRead(BaseModel):
    period_id: int
    period_name: str
    user_id: int
    nickname: str
    correct_count: int


class FinalResultsRead(BaseModel):
    event_id: int
    event_name: str
    ranking: list[RankingEntryRead]
    me: Optional[RankingEntryRead] = None
    champions: list[PeriodChampionRead]
