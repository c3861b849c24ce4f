"""
UserProgress model - the canonical progress record per (user, course, target)
"""
from sqlalchemy import (
    Column, Integer, String, TIMESTAMP, ForeignKey, CheckConstraint, UniqueConstraint, func
)
from codequest.database import Base, utcnow


class UserProgress(Base):
    """
    User progress table - at most one row per identifying tuple.

    target_key is the serialized ProgressTarget ("course", "lesson:3",
    "exercise:7", "quiz:2"). Unique constraints treat NULLs as distinct, so
    uniqueness is enforced on (user_id, course_id, target_key) instead of on
    the nullable id columns.
    """
    __tablename__ = "user_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "course_id", "target_key", name="uq_progress_user_course_target"),
        CheckConstraint("status IN ('started', 'completed')", name="ck_progress_status"),
        CheckConstraint("points_earned >= 0", name="ck_progress_points_nonneg"),
        CheckConstraint(
            "(CASE WHEN lesson_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN exercise_id IS NULL THEN 0 ELSE 1 END"
            " + CASE WHEN quiz_id IS NULL THEN 0 ELSE 1 END) <= 1",
            name="ck_progress_single_target",
        ),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"))
    exercise_id = Column(Integer, ForeignKey("exercises.id", ondelete="CASCADE"))
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"))
    target_key = Column(String(32), nullable=False)
    status = Column(String(20), nullable=False)
    points_earned = Column(Integer, nullable=False, default=0)
    completed_at = Column(TIMESTAMP)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now(), onupdate=utcnow)

    def __repr__(self):
        return (
            f"<UserProgress(user_id={self.user_id}, course_id={self.course_id}, "
            f"target={self.target_key}, status={self.status}, points={self.points_earned})>"
        )
