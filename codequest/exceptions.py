"""
Domain errors raised by the evaluation and progression engine
"""
from typing import Any, Optional


class EngineError(Exception):
    """Base class for all engine errors"""

    error_code = "engine_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFound(EngineError):
    """An exercise, quiz, user or course does not exist"""

    error_code = "not_found"

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class MalformedInput(EngineError):
    """A payload could not be parsed into its typed form"""

    error_code = "malformed_input"


class MalformedTestData(MalformedInput):
    """An exercise's test cases are not a list of {input, expected} records"""

    error_code = "malformed_test_data"


class MalformedAnswers(MalformedInput):
    """A quiz answer payload is not an ordered list of strings"""

    error_code = "malformed_answers"


class EmptyQuiz(EngineError):
    """A quiz with zero questions cannot be graded"""

    error_code = "empty_quiz"

    def __init__(self, quiz_id: int):
        super().__init__(f"Quiz {quiz_id} has no questions")
        self.quiz_id = quiz_id


class LedgerInconsistency(EngineError):
    """Points could not be credited after a progress write"""

    error_code = "ledger_inconsistency"

    def __init__(self, user_id: int, delta: int, reason: Optional[str] = None):
        message = f"Could not credit {delta} points to user {user_id}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
        self.user_id = user_id
        self.delta = delta


class BadgeEvaluationFailure(EngineError):
    """Badge evaluation failed for a user"""

    error_code = "badge_evaluation_failure"
