"""
Course and Lesson models - the catalog the engine grades against
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, TIMESTAMP, ForeignKey, func
from sqlalchemy.orm import relationship
from codequest.database import Base, utcnow


class Course(Base):
    """
    Courses table - language is forwarded to the code runner
    """
    __tablename__ = "courses"

    id = Column(Integer, primary_key=True)
    title = Column(String(200), nullable=False)
    description = Column(Text, nullable=False, default="")
    language = Column(String(50), nullable=False, default="python")
    difficulty = Column(String(20), nullable=False, default="beginner")
    is_published = Column(Boolean, nullable=False, default=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    lessons = relationship(
        "Lesson", back_populates="course", order_by="Lesson.order_index", cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<Course(id={self.id}, title={self.title})>"


class Lesson(Base):
    """
    Lessons table - ordered within a course
    """
    __tablename__ = "lessons"

    id = Column(Integer, primary_key=True)
    course_id = Column(Integer, ForeignKey("courses.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False, default="")
    order_index = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    course = relationship("Course", back_populates="lessons")
    exercises = relationship("Exercise", back_populates="lesson", cascade="all, delete-orphan")
    quizzes = relationship("Quiz", back_populates="lesson", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Lesson(id={self.id}, course_id={self.course_id}, order={self.order_index})>"
