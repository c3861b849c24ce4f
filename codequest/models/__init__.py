"""
Database models package
"""
from codequest.models.user import User
from codequest.models.course import Course, Lesson
from codequest.models.exercise import Exercise, CodeSubmission
from codequest.models.quiz import Quiz, QuizQuestion
from codequest.models.quiz_attempt import QuizAttempt
from codequest.models.user_progress import UserProgress
from codequest.models.badge import Badge, UserBadge

__all__ = [
    "User",
    "Course", "Lesson",
    "Exercise", "CodeSubmission",
    "Quiz", "QuizQuestion",
    "QuizAttempt",
    "UserProgress",
    "Badge", "UserBadge",
]
