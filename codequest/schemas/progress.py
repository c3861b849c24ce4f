"""
Pydantic schemas and value types for progress tracking
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field, model_validator


class ProgressStatus(str, Enum):
    STARTED = "started"
    COMPLETED = "completed"


class TargetKind(str, Enum):
    COURSE = "course"
    LESSON = "lesson"
    EXERCISE = "exercise"
    QUIZ = "quiz"


@dataclass(frozen=True)
class ProgressTarget:
    """
    What a progress record tracks inside a course.

    COURSE carries no id (course-level completion); every other kind carries
    the id of the lesson, exercise or quiz.
    """
    kind: TargetKind
    target_id: Optional[int] = None

    def __post_init__(self):
        if self.kind == TargetKind.COURSE and self.target_id is not None:
            raise ValueError("Course-level targets carry no id")
        if self.kind != TargetKind.COURSE and self.target_id is None:
            raise ValueError(f"{self.kind.value} target requires an id")

    @classmethod
    def course(cls) -> "ProgressTarget":
        return cls(TargetKind.COURSE)

    @classmethod
    def lesson(cls, lesson_id: int) -> "ProgressTarget":
        return cls(TargetKind.LESSON, lesson_id)

    @classmethod
    def exercise(cls, exercise_id: int) -> "ProgressTarget":
        return cls(TargetKind.EXERCISE, exercise_id)

    @classmethod
    def quiz(cls, quiz_id: int) -> "ProgressTarget":
        return cls(TargetKind.QUIZ, quiz_id)

    @classmethod
    def from_ids(
        cls,
        lesson_id: Optional[int] = None,
        exercise_id: Optional[int] = None,
        quiz_id: Optional[int] = None,
    ) -> "ProgressTarget":
        """Build a target from the nullable id triple; at most one may be set"""
        given = [
            (kind, value)
            for kind, value in (
                (TargetKind.LESSON, lesson_id),
                (TargetKind.EXERCISE, exercise_id),
                (TargetKind.QUIZ, quiz_id),
            )
            if value is not None
        ]
        if len(given) > 1:
            raise ValueError("At most one of lesson_id, exercise_id, quiz_id may be set")
        if not given:
            return cls.course()
        kind, value = given[0]
        return cls(kind, value)

    @property
    def key(self) -> str:
        """Stable storage key, e.g. 'course' or 'quiz:4'"""
        if self.kind == TargetKind.COURSE:
            return self.kind.value
        return f"{self.kind.value}:{self.target_id}"

    def columns(self) -> Dict[str, Optional[int]]:
        """The lesson_id / exercise_id / quiz_id column values for this target"""
        return {
            "lesson_id": self.target_id if self.kind == TargetKind.LESSON else None,
            "exercise_id": self.target_id if self.kind == TargetKind.EXERCISE else None,
            "quiz_id": self.target_id if self.kind == TargetKind.QUIZ else None,
        }


class ProgressUpdate(BaseModel):
    """Schema for recording progress directly"""
    user_id: int
    course_id: int
    lesson_id: Optional[int] = None
    exercise_id: Optional[int] = None
    quiz_id: Optional[int] = None
    status: ProgressStatus
    points_earned: int = Field(0, ge=0)

    @model_validator(mode="after")
    def single_target(self):
        set_ids = [v for v in (self.lesson_id, self.exercise_id, self.quiz_id) if v is not None]
        if len(set_ids) > 1:
            raise ValueError("At most one of lesson_id, exercise_id, quiz_id may be set")
        return self

    def target(self) -> ProgressTarget:
        return ProgressTarget.from_ids(self.lesson_id, self.exercise_id, self.quiz_id)


class ProgressResponse(BaseModel):
    """A progress record"""
    id: int
    user_id: int
    course_id: int
    lesson_id: Optional[int] = None
    exercise_id: Optional[int] = None
    quiz_id: Optional[int] = None
    status: ProgressStatus
    points_earned: int
    completed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
