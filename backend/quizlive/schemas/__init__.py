"""Convenience imports for all schema classes used by the API."""

from .control import TransitionRequest, QuizControlRead, QuizStatusRead
from .answer import AnswerSubmit, AnswerCreated, OwnAnswer, AnswerResultRead
from .ranking import (
    RankingEntryRead,
    RankingsRead,
    PeriodResultsRead,
    PeriodChampionRead,
    FinalResultsRead,
)
from .reorder import ReorderRequest, PositionRead

__all__ = [
    "TransitionRequest",
    "QuizControlRead",
    "QuizStatusRead",
    "AnswerSubmit",
    "AnswerCreated",
    "OwnAnswer",
    "AnswerResultRead",
    "RankingEntryRead",
    "RankingsRead",
    "PeriodResultsRead",
    "PeriodChampionRead",
    "FinalResultsRead",
    "ReorderRequest",
    "PositionRead",
]
