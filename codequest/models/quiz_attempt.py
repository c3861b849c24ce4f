"""
QuizAttempt model - stores quiz submissions and grading
"""
from sqlalchemy import Column, Integer, TIMESTAMP, ForeignKey, JSON, func
from codequest.database import Base, utcnow


class QuizAttempt(Base):
    """
    Quiz attempts table - append-only, one row per submit action
    """
    __tablename__ = "quiz_attempts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    answers = Column(JSON, nullable=False)  # User's answers, positional
    results = Column(JSON)  # Per-question breakdown
    score = Column(Integer, nullable=False)  # Count of correct answers
    total_questions = Column(Integer, nullable=False)
    completed_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<QuizAttempt(user_id={self.user_id}, quiz_id={self.quiz_id}, score={self.score}/{self.total_questions})>"
