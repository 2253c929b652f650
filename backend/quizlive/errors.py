"""Error taxonomy for the progression and ranking engine.

Every error carries the HTTP status the API answers with and a stable
machine-readable ``code``.  Callers are expected to branch on the class:

* :class:`ValidationError` - the request itself is wrong; do not retry.
* :class:`ConflictError` - someone else got there first; refetch and retry.
* :class:`NotFoundError` - a catalog reference dangles; fatal for the operator.
* :class:`DataIntegrityError` - stored state breaks an invariant; fatal.
* :class:`TransientError` - storage hiccup; retry the whole operation.
"""


class QuizError(Exception):
    status_code = 500
    code = "quiz_error"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class ValidationError(QuizError):
    status_code = 400
    code = "validation_error"


class IllegalTransitionError(ValidationError):
    code = "illegal_transition"

    def __init__(self, current: str, requested: str):
        super().__init__(f"Transition from {current} to {requested} is not allowed")
        self.current = current
        self.requested = requested


class NoFurtherQuestionError(ValidationError):
    """No question is left to show from the current position.

    ``suggested_screen`` names the screen the operator should request
    instead, or is ``None`` when there is nowhere sensible to go.
    """

    code = "no_further_question"

    def __init__(self, message: str, suggested_screen: str | None = None):
        super().__init__(message)
        self.suggested_screen = suggested_screen

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["suggested_screen"] = self.suggested_screen
        return data


class ChoiceMismatchError(ValidationError):
    code = "choice_mismatch"


class ConflictError(QuizError):
    status_code = 409
    code = "conflict"


class ControlConflictError(ConflictError):
    code = "control_conflict"


class AlreadyAnsweredError(ConflictError):
    code = "already_answered"


class StaleQuestionError(ConflictError):
    code = "stale_question"


class NotFoundError(QuizError):
    status_code = 404
    code = "not_found"


class DataIntegrityError(QuizError):
    status_code = 500
    code = "data_integrity"


class TransientError(QuizError):
    status_code = 503
    code = "storage_unavailable"
