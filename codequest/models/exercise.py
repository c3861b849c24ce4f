"""
Exercise and CodeSubmission models
"""
from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, ForeignKey, CheckConstraint, JSON, func
from sqlalchemy.orm import relationship
from codequest.database import Base, utcnow


class Exercise(Base):
    """
    Exercises table - test_cases holds the admin-authored
    [{"input": ..., "expected": ...}] list, validated only at grading time
    """
    __tablename__ = "exercises"
    __table_args__ = (
        CheckConstraint("points_reward > 0", name="ck_exercise_points_positive"),
    )

    id = Column(Integer, primary_key=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    starter_code = Column(Text, nullable=False, default="")
    solution_code = Column(Text, nullable=False, default="")
    test_cases = Column(JSON, nullable=False)
    points_reward = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    lesson = relationship("Lesson", back_populates="exercises")

    def __repr__(self):
        return f"<Exercise(id={self.id}, lesson_id={self.lesson_id}, points={self.points_reward})>"


class CodeSubmission(Base):
    """
    Code submissions table - append-only grading history
    """
    __tablename__ = "code_submissions"
    __table_args__ = (
        CheckConstraint("status IN ('pending', 'passed', 'failed')", name="ck_submission_status"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    exercise_id = Column(Integer, ForeignKey("exercises.id", ondelete="CASCADE"), nullable=False, index=True)
    code = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    test_results = Column(JSON)  # Verdict with per-case breakdown
    submitted_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), index=True)

    def __repr__(self):
        return f"<CodeSubmission(id={self.id}, user_id={self.user_id}, status={self.status})>"
