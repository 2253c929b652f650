"""Schemas for answer submission and answer results."""

from typing import Optional
from pydantic import BaseModel


class AnswerSubmit(BaseModel):
    choice_id: int


class AnswerCreated(BaseModel):
    answer_id: int


class OwnAnswer(BaseModel):
    choice_id: int
    is_correct: bool
    response_time_ms: int


class AnswerResultRead(BaseModel):
    question_id: int
    correct_choice_id: Optional[int] = None
    answer: Optional[OwnAnswer] = None
