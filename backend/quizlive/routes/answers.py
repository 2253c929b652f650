from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from quizlive.answers import get_answer_result, submit_answer
from quizlive.auth import get_current_participant
from quizlive.database import get_session
from quizlive.models import Participant
from quizlive.schemas import AnswerCreated, AnswerResultRead, AnswerSubmit, OwnAnswer

router = APIRouter(prefix="/events", tags=["answers"])


@router.post("/{event_id}/answers", response_model=AnswerCreated)
async def answer_current_question(
    event_id: int,
    data: AnswerSubmit,
    db: AsyncSession = Depends(get_session),
    participant: Participant = Depends(get_current_participant),
):
    answer = await submit_answer(db, participant.id, event_id, data.choice_id)
    return AnswerCreated(answer_id=answer.id)


@router.get("/{event_id}/answers/current", response_model=AnswerResultRead)
async def current_answer_result(
    event_id: int,
    db: AsyncSession = Depends(get_session),
    participant: Participant = Depends(get_current_participant),
):
    result = await get_answer_result(db, participant.id, event_id)
    own = None
    if result.answer is not None:
        own = OwnAnswer(
            choice_id=result.answer.choice_id,
            is_correct=result.answer.is_correct,
            response_time_ms=result.answer.response_time_ms,
        )
    return AnswerResultRead(
        question_id=result.question_id,
        correct_choice_id=result.correct_choice_id,
        answer=own,
    )
