"""Quiz screens and the transition rules between them.

The operator moves an event through a fixed sequence of screens.  Which
screen may follow which is a static table; :func:`validate_transition` is the
only gate and has no side effects.
"""

from enum import Enum

from quizlive.errors import ValidationError, IllegalTransitionError


class Screen(str, Enum):
    """Phase of quiz progression shown to every participant."""

    WAITING = "waiting"
    QUESTION_READING = "question_reading"
    QUESTION = "question"
    ANSWER_CHECK = "answer_check"
    ANSWER = "answer"
    BREAK = "break"
    PERIOD_RESULT = "period_result"
    FINAL_RESULT = "final_result"


TRANSITION_RULES: dict[Screen, frozenset[Screen]] = {
    Screen.WAITING: frozenset({Screen.QUESTION}),
    Screen.QUESTION_READING: frozenset({Screen.QUESTION}),
    Screen.QUESTION: frozenset({Screen.ANSWER_CHECK, Screen.ANSWER}),
    Screen.ANSWER_CHECK: frozenset({Screen.ANSWER}),
    Screen.ANSWER: frozenset({Screen.QUESTION, Screen.BREAK, Screen.PERIOD_RESULT}),
    Screen.BREAK: frozenset({Screen.QUESTION}),
    Screen.PERIOD_RESULT: frozenset({Screen.QUESTION, Screen.FINAL_RESULT}),
    Screen.FINAL_RESULT: frozenset(),
}

# Screens during which a question is on display.
ACTIVE_SCREENS = frozenset(
    {Screen.QUESTION, Screen.QUESTION_READING, Screen.ANSWER_CHECK, Screen.ANSWER}
)

# Screens during which the display window is open and answers are accepted.
ANSWERABLE_SCREENS = frozenset({Screen.QUESTION, Screen.ANSWER_CHECK})


def parse_screen(value: str) -> Screen:
    """Return the :class:`Screen` named by ``value`` or raise ValidationError."""
    try:
        return Screen(value)
    except ValueError:
        raise ValidationError(f"Unknown screen '{value}'", code="unknown_screen")


def allowed_successors(current: Screen) -> frozenset[Screen]:
    return TRANSITION_RULES[current]


def validate_transition(current: Screen, requested: Screen) -> None:
    """Raise :class:`IllegalTransitionError` unless ``requested`` may follow ``current``."""
    if requested not in TRANSITION_RULES[current]:
        raise IllegalTransitionError(current.value, requested.value)
