"""Schemas for quiz control reads and screen transitions."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from quizlive.screens import Screen


class TransitionRequest(BaseModel):
    screen: str
    version: Optional[int] = None


class QuizControlRead(BaseModel):
    event_id: int
    screen: Screen
    period_id: Optional[int] = None
    question_id: Optional[int] = None
    displayed_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    updated_at: datetime
    version: int

    model_config = ConfigDict(from_attributes=True)


class QuizStatusRead(BaseModel):
    """What a participant needs to pick the screen to show."""

    event_id: int
    screen: Screen
    period_id: Optional[int] = None
    question_id: Optional[int] = None
