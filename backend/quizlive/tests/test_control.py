import asyncio
import pathlib
import sys
from datetime import datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

import quizlive.control as control_module
from quizlive.answers import submit_answer
from quizlive.control import get_control, reset_event, transition
from quizlive.crud import get_quiz_control, update_quiz_control
from quizlive.errors import (
    ControlConflictError,
    NotFoundError,
    ValidationError,
)
from quizlive.models import (
    Answer,
    Choice,
    Event,
    Participant,
    Period,
    PeriodQuestion,
    Question,
    QuestionDisplay,
    QuizControl,
)
from quizlive.screens import Screen

T0 = datetime(2024, 5, 1, 18, 0, 0)


async def _setup_test_db(url="sqlite+aiosqlite:///:memory:"):
    engine = create_async_engine(url)
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async with TestSession() as session:
        session.add(Event(id=1, name="Pub Quiz"))
        session.add(Period(id=1, event_id=1, name="Round 1", order_num=1))
        for question_id, order_num in ((11, 1), (12, 2)):
            session.add(Question(id=question_id, text=f"Q{question_id}"))
            session.add(
                PeriodQuestion(period_id=1, question_id=question_id, order_num=order_num)
            )
            session.add(
                Choice(id=question_id * 10 + 1, question_id=question_id, text="right", is_correct=True)
            )
        session.add(Participant(id=1, event_id=1, nickname="alice"))
        session.add(QuizControl(event_id=1))
        await session.commit()

    return TestSession


def test_every_write_bumps_the_version():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            control = await transition(session, 1, Screen.QUESTION, now=T0)
            assert control.version == 1
            assert control.updated_at is not None
            control = await transition(session, 1, "answer", expected_version=1)
            assert control.version == 2
            assert control.current_screen == Screen.ANSWER

        async with TestSession() as session:
            stored = await get_quiz_control(session, 1)
            assert stored.version == 2
            assert (stored.screen, stored.period_id, stored.question_id) == ("answer", 1, 11)

    asyncio.run(run())


def test_expected_version_must_match():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            with pytest.raises(ControlConflictError):
                await transition(session, 1, Screen.QUESTION, expected_version=3)
            control = await get_quiz_control(session, 1)
            assert control.current_screen == Screen.WAITING

    asyncio.run(run())


def test_stale_copy_cannot_overwrite(tmp_path):
    async def run():
        TestSession = await _setup_test_db(f"sqlite+aiosqlite:///{tmp_path / 'quiz.db'}")
        async with TestSession() as first, TestSession() as second:
            stale = await get_quiz_control(first, 1)
            await transition(second, 1, Screen.QUESTION, now=T0)

            with pytest.raises(ControlConflictError):
                await update_quiz_control(first, stale, screen=Screen.FINAL_RESULT.value)
            await first.rollback()

        async with TestSession() as session:
            control = await get_quiz_control(session, 1)
            assert control.current_screen == Screen.QUESTION
            assert control.version == 1

    asyncio.run(run())


def _other_operator_moves_first(monkeypatch, TestSession, screen):
    """Make the next transition lose a race against a move to ``screen``.

    The other operator's move commits after ours has read quiz control and
    before ours writes it.
    """
    plan_transition = control_module._plan_transition
    fired = []

    async def interleaved(db, control, requested, now):
        if not fired:
            fired.append(screen)
            async with TestSession() as other:
                await transition(other, 1, screen, now=now)
        return await plan_transition(db, control, requested, now)

    monkeypatch.setattr(control_module, "_plan_transition", interleaved)
    return fired


async def _file_db_at_answer(tmp_path):
    TestSession = await _setup_test_db(f"sqlite+aiosqlite:///{tmp_path / 'quiz.db'}")
    async with TestSession() as session:
        await transition(session, 1, Screen.QUESTION, now=T0)
        await transition(session, 1, Screen.ANSWER, now=T0 + timedelta(seconds=10))
    return TestSession


def test_concurrent_transitions_only_one_wins(tmp_path, monkeypatch):
    async def run():
        TestSession = await _file_db_at_answer(tmp_path)
        fired = _other_operator_moves_first(monkeypatch, TestSession, Screen.PERIOD_RESULT)

        async with TestSession() as session:
            with pytest.raises(ControlConflictError):
                await transition(session, 1, Screen.BREAK)
        assert fired == [Screen.PERIOD_RESULT]

        async with TestSession() as session:
            control = await get_quiz_control(session, 1)
            assert control.current_screen == Screen.PERIOD_RESULT
            assert control.version == 3

    asyncio.run(run())


def test_racing_next_question_is_a_conflict(tmp_path, monkeypatch):
    async def run():
        TestSession = await _file_db_at_answer(tmp_path)
        _other_operator_moves_first(monkeypatch, TestSession, Screen.QUESTION)

        async with TestSession() as session:
            with pytest.raises(ControlConflictError):
                await transition(session, 1, Screen.QUESTION, now=T0 + timedelta(seconds=30))

        async with TestSession() as session:
            control = await get_quiz_control(session, 1)
            assert control.active_question == (1, 12)
            assert control.version == 3
            displays = (
                await session.execute(select(QuestionDisplay).order_by(QuestionDisplay.id))
            ).scalars().all()
            assert [(d.question_id, d.closed_at is None) for d in displays] == [
                (11, False),
                (12, True),
            ]

    asyncio.run(run())


def test_racing_answer_reveal_is_a_conflict(tmp_path, monkeypatch):
    async def run():
        TestSession = await _setup_test_db(f"sqlite+aiosqlite:///{tmp_path / 'quiz.db'}")
        async with TestSession() as session:
            await transition(session, 1, Screen.QUESTION, now=T0)
        _other_operator_moves_first(monkeypatch, TestSession, Screen.ANSWER)

        async with TestSession() as session:
            with pytest.raises(ControlConflictError):
                await transition(session, 1, Screen.ANSWER, now=T0 + timedelta(seconds=20))

        async with TestSession() as session:
            control = await get_quiz_control(session, 1)
            assert control.current_screen == Screen.ANSWER
            assert control.version == 2
            [display] = (await session.execute(select(QuestionDisplay))).scalars().all()
            assert display.closed_at == T0 + timedelta(seconds=20)

    asyncio.run(run())


def test_unknown_screen_is_rejected():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            with pytest.raises(ValidationError) as excinfo:
                await transition(session, 1, "intermission")
            assert excinfo.value.code == "unknown_screen"

    asyncio.run(run())


def test_missing_control():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            with pytest.raises(NotFoundError):
                await get_control(session, 42)
            with pytest.raises(NotFoundError):
                await transition(session, 42, Screen.QUESTION)

    asyncio.run(run())


def test_reset_returns_to_waiting_and_drops_progress():
    async def run():
        TestSession = await _setup_test_db()
        async with TestSession() as session:
            await transition(session, 1, Screen.QUESTION, now=T0)
            await submit_answer(session, 1, 1, 111, now=T0 + timedelta(seconds=2))

            control = await reset_event(session, 1)
            assert control.current_screen == Screen.WAITING
            assert control.position is None
            assert control.displayed_at is None
            assert control.version == 2

            assert (await session.execute(select(Answer))).scalars().all() == []
            assert (await session.execute(select(QuestionDisplay))).scalars().all() == []
            assert (await session.execute(select(Participant))).scalars().all() == []

            # The catalog is untouched and the event can start over.
            control = await transition(session, 1, Screen.QUESTION, now=T0 + timedelta(hours=1))
            assert control.active_question == (1, 11)

    asyncio.run(run())
