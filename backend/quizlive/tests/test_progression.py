import asyncio
import pathlib
import sys
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from quizlive.control import transition
from quizlive.crud import get_quiz_control
from quizlive.errors import (
    DataIntegrityError,
    IllegalTransitionError,
    NoFurtherQuestionError,
    NotFoundError,
)
from quizlive.models import (
    Event,
    Period,
    PeriodQuestion,
    Question,
    QuestionDisplay,
    QuizControl,
)
from quizlive.progression import NoFurtherQuestion, resolve_next_question
from quizlive.screens import Screen

T0 = datetime(2024, 5, 1, 18, 0, 0)


async def _setup_test_db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    return async_sessionmaker(engine, expire_on_commit=False)


async def _seed(session, periods: dict[int, int], links: dict[int, list[tuple[int, int]]]):
    """Create event 1 with ``periods`` {id: order_num} and ``links``
    {period_id: [(question_id, order_num), ...]}."""
    session.add(Event(id=1, name="Pub Quiz"))
    for period_id, order_num in periods.items():
        session.add(Period(id=period_id, event_id=1, name=f"P{period_id}", order_num=order_num))
    for period_id, questions in links.items():
        for question_id, order_num in questions:
            session.add(Question(id=question_id, text=f"Q{question_id}"))
            session.add(
                PeriodQuestion(period_id=period_id, question_id=question_id, order_num=order_num)
            )
    session.add(QuizControl(event_id=1))
    await session.commit()


def test_first_question_comes_from_lowest_period_and_position():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            await _seed(
                session,
                {5: 2, 3: 1},
                {3: [(20, 2), (10, 1)], 5: [(30, 1)]},
            )
            control = await transition(session, 1, "question", now=T0)
            assert control.screen == "question"
            assert (control.period_id, control.question_id) == (3, 10)
            assert control.displayed_at == T0
            assert control.version == 1

    asyncio.run(run())


def test_walks_a_period_then_requires_period_result():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            await _seed(session, {1: 1, 2: 2}, {1: [(11, 1), (12, 2)], 2: [(21, 1)]})
            await transition(session, 1, Screen.QUESTION, now=T0)
            await transition(session, 1, Screen.ANSWER, now=T0 + timedelta(seconds=10))
            control = await transition(session, 1, Screen.QUESTION, now=T0 + timedelta(seconds=20))
            assert (control.period_id, control.question_id) == (1, 12)

            await transition(session, 1, Screen.ANSWER)
            with pytest.raises(NoFurtherQuestionError) as info:
                await transition(session, 1, Screen.QUESTION)
            assert info.value.suggested_screen == "period_result"

            # The failed attempt left nothing behind.
            control = await get_quiz_control(session, 1)
            assert control.screen == "answer"
            assert control.question_id == 12

            await transition(session, 1, Screen.PERIOD_RESULT)
            control = await transition(session, 1, Screen.QUESTION)
            assert (control.period_id, control.question_id) == (2, 21)

    asyncio.run(run())


def test_break_continues_within_the_period():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            await _seed(session, {1: 1}, {1: [(11, 1), (12, 2)]})
            await transition(session, 1, Screen.QUESTION)
            await transition(session, 1, Screen.ANSWER)
            control = await transition(session, 1, Screen.BREAK)
            assert control.active_question is None
            assert control.position == (1, 11)
            control = await transition(session, 1, Screen.QUESTION)
            assert control.question_id == 12

            await transition(session, 1, Screen.ANSWER)
            await transition(session, 1, Screen.BREAK)
            result = await resolve_next_question(session, control)
            assert isinstance(result, NoFurtherQuestion)
            assert result.suggested_screen == Screen.PERIOD_RESULT

    asyncio.run(run())


def test_after_last_period_suggests_final_result():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            await _seed(session, {1: 1}, {1: [(11, 1)]})
            await transition(session, 1, Screen.QUESTION)
            await transition(session, 1, Screen.ANSWER)
            await transition(session, 1, Screen.PERIOD_RESULT)
            with pytest.raises(NoFurtherQuestionError) as info:
                await transition(session, 1, Screen.QUESTION)
            assert info.value.suggested_screen == "final_result"
            control = await transition(session, 1, Screen.FINAL_RESULT)
            assert control.screen == "final_result"
            with pytest.raises(IllegalTransitionError):
                await transition(session, 1, Screen.QUESTION)

    asyncio.run(run())


def test_empty_period_has_no_further_question():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            await _seed(session, {1: 1, 2: 2}, {2: [(21, 1)]})
            control = await get_quiz_control(session, 1)
            result = await resolve_next_question(session, control)
            assert isinstance(result, NoFurtherQuestion)
            assert result.suggested_screen is None
            with pytest.raises(NoFurtherQuestionError):
                await transition(session, 1, Screen.QUESTION)
            displays = (await session.execute(select(QuestionDisplay))).scalars().all()
            assert displays == []

    asyncio.run(run())


def test_event_without_periods_is_not_found():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            await _seed(session, {}, {})
            with pytest.raises(NotFoundError):
                await transition(session, 1, Screen.QUESTION)

    asyncio.run(run())


def test_unfinished_reorder_blocks_progression():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            await _seed(session, {1: 1}, {1: [(11, -2), (12, -3)]})
            with pytest.raises(DataIntegrityError):
                await transition(session, 1, Screen.QUESTION)

    asyncio.run(run())


def test_missing_quiz_control_is_not_found():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            with pytest.raises(NotFoundError):
                await transition(session, 99, Screen.QUESTION)

    asyncio.run(run())
