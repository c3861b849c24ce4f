"""
Grading contract - the typed shapes every grader produces or consumes
"""
from enum import Enum
from typing import Any, List, Optional

from pydantic import AliasChoices, BaseModel, Field, computed_field


class Outcome(str, Enum):
    """Verdict outcome. PARTIAL only applies to quizzes."""
    PASSED = "passed"
    FAILED = "failed"
    PARTIAL = "partial"


class TestCase(BaseModel):
    """One admin-authored test case of an exercise"""
    __test__ = False  # not a pytest class

    input: Any
    expected: Any = Field(validation_alias=AliasChoices("expected", "expected_output"))


class ExecutionResult(BaseModel):
    """What the code runner reports for a single input"""
    output: Any = None
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class ItemResult(BaseModel):
    """Grading details for a single test case or question"""
    index: int
    passed: bool
    expected: Any = None
    actual: Any = None
    error: Optional[str] = None


class Verdict(BaseModel):
    """Structured result of grading one submission or attempt"""
    outcome: Outcome
    correct_count: int = Field(ge=0)
    total_count: int = Field(ge=0)
    items: List[ItemResult] = Field(default_factory=list)
    message: Optional[str] = None  # Diagnostic, e.g. for malformed test data

    @computed_field
    @property
    def percentage(self) -> float:
        if self.total_count == 0:
            return 0.0
        return round(self.correct_count / self.total_count * 100, 2)

    @property
    def passed(self) -> bool:
        return self.outcome == Outcome.PASSED
