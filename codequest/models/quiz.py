"""
Quiz model - stores quizzes and their ordered questions
"""
from sqlalchemy import Column, Integer, String, Text, TIMESTAMP, ForeignKey, CheckConstraint, JSON, func
from sqlalchemy.orm import relationship
from codequest.database import Base, utcnow


class Quiz(Base):
    """
    Quizzes table - points_reward is split proportionally to the score
    """
    __tablename__ = "quizzes"
    __table_args__ = (
        CheckConstraint("points_reward > 0", name="ck_quiz_points_positive"),
    )

    id = Column(Integer, primary_key=True)
    lesson_id = Column(Integer, ForeignKey("lessons.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    points_reward = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    lesson = relationship("Lesson", back_populates="quizzes")
    questions = relationship(
        "QuizQuestion",
        back_populates="quiz",
        order_by="QuizQuestion.order_index",
        cascade="all, delete-orphan",
    )

    def __repr__(self):
        return f"<Quiz(id={self.id}, lesson_id={self.lesson_id}, points={self.points_reward})>"


class QuizQuestion(Base):
    """
    Quiz questions table - correct_answer must equal one of the options
    """
    __tablename__ = "quiz_questions"

    id = Column(Integer, primary_key=True)
    quiz_id = Column(Integer, ForeignKey("quizzes.id", ondelete="CASCADE"), nullable=False, index=True)
    question = Column(Text, nullable=False)
    options = Column(JSON, nullable=False)  # ["Option A", "Option B", ...]
    correct_answer = Column(Text, nullable=False)
    explanation = Column(Text)
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    quiz = relationship("Quiz", back_populates="questions")

    def __repr__(self):
        return f"<QuizQuestion(id={self.id}, quiz_id={self.quiz_id}, order={self.order_index})>"
