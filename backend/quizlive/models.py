"""Database models used by the quiz engine.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic).
Catalog tables (events, periods, questions, choices) are owned by the
catalog service; the engine reads them and writes only quiz control,
question displays and answers.  Uniqueness that the engine relies on for
correctness is declared here so the database enforces it.
"""

from typing import NamedTuple, Optional
from datetime import datetime
from sqlmodel import SQLModel, Field
from sqlalchemy import Index, UniqueConstraint, text

from quizlive.screens import Screen, ACTIVE_SCREENS


class ActiveQuestion(NamedTuple):
    """The question currently on display and the period it is shown in."""

    period_id: int
    question_id: int


class Event(SQLModel, table=True):
    """A quiz event run live by an operator."""

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    status: str = "draft"  # draft, active, paused, completed
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Participant(SQLModel, table=True):
    """Player registered for an event under a nickname."""

    __table_args__ = (UniqueConstraint("event_id", "nickname"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    nickname: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Period(SQLModel, table=True):
    """Ordered group of questions within an event."""

    __table_args__ = (UniqueConstraint("event_id", "order_num"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", index=True)
    name: str = ""
    order_num: int
    status: str = "pending"  # pending, active, completed


class Question(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    text: str
    image_url: Optional[str] = None


class Choice(SQLModel, table=True):
    """Answer option; exactly one per question is correct."""

    id: Optional[int] = Field(default=None, primary_key=True)
    question_id: int = Field(foreign_key="question.id", index=True)
    text: str
    is_correct: bool = False
    order_num: int = 0


class PeriodQuestion(SQLModel, table=True):
    """Position of a question inside a period."""

    __table_args__ = (
        UniqueConstraint("period_id", "order_num"),
        UniqueConstraint("period_id", "question_id"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    period_id: int = Field(foreign_key="period.id", index=True)
    question_id: int = Field(foreign_key="question.id")
    order_num: int


class QuizControl(SQLModel, table=True):
    """Per-event progression state.

    ``period_id``/``question_id`` hold the last shown position and survive
    ``break`` and ``period_result`` so the next question can be resolved
    from there.  :attr:`active_question` is what the rest of the system sees.
    ``version`` grows by one with every write and guards concurrent updates.
    """

    id: Optional[int] = Field(default=None, primary_key=True)
    event_id: int = Field(foreign_key="event.id", unique=True)
    screen: str = Screen.WAITING.value
    period_id: Optional[int] = Field(default=None, foreign_key="period.id")
    question_id: Optional[int] = Field(default=None, foreign_key="question.id")
    displayed_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    updated_at: datetime = Field(default_factory=datetime.utcnow)
    version: int = 0

    @property
    def current_screen(self) -> Screen:
        return Screen(self.screen)

    @property
    def position(self) -> Optional[ActiveQuestion]:
        if self.period_id is None or self.question_id is None:
            return None
        return ActiveQuestion(self.period_id, self.question_id)

    @property
    def active_question(self) -> Optional[ActiveQuestion]:
        if self.current_screen not in ACTIVE_SCREENS:
            return None
        return self.position


class QuestionDisplay(SQLModel, table=True):
    """Window during which a question was shown; ``closed_at`` is None while open."""

    __table_args__ = (
        # At most one open window per period.
        Index(
            "ix_questiondisplay_open_period",
            "period_id",
            unique=True,
            sqlite_where=text("closed_at IS NULL"),
            postgresql_where=text("closed_at IS NULL"),
        ),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    question_id: int = Field(foreign_key="question.id")
    period_id: int = Field(foreign_key="period.id", index=True)
    displayed_at: datetime
    closed_at: Optional[datetime] = None


class Answer(SQLModel, table=True):
    """A participant's single answer to a question."""

    __table_args__ = (UniqueConstraint("user_id", "question_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="participant.id", index=True)
    question_id: int = Field(foreign_key="question.id", index=True)
    choice_id: int = Field(foreign_key="choice.id")
    is_correct: bool
    response_time_ms: int
    answered_at: datetime = Field(default_factory=datetime.utcnow)
