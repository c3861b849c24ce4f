"""
Course completion detection service
Marks a course completed once all of its graded items are completed
"""
import logging
from typing import Optional, Set

from sqlalchemy.orm import Session

from codequest.models import Exercise, Lesson, Quiz, UserProgress
from codequest.schemas.progress import ProgressStatus, ProgressTarget
from codequest.services.progress_service import ProgressChange, progress_service

logger = logging.getLogger(__name__)


class CompletionService:
    """
    Service for detecting course completion

    Algorithm: a course is complete for a user when every exercise and every
    quiz in its lessons has a completed progress record. Courses with no
    graded items are never completed automatically.

    Completion is recorded as the course-level progress record (no lesson,
    exercise or quiz), worth COURSE_COMPLETION_POINTS.
    """

    COURSE_COMPLETION_POINTS = 0

    def graded_items(self, db: Session, course_id: int) -> Set[str]:
        """Target keys of every exercise and quiz in the course"""
        exercise_ids = db.query(Exercise.id).join(Lesson, Exercise.lesson_id == Lesson.id).filter(
            Lesson.course_id == course_id
        ).all()
        quiz_ids = db.query(Quiz.id).join(Lesson, Quiz.lesson_id == Lesson.id).filter(
            Lesson.course_id == course_id
        ).all()

        keys = {ProgressTarget.exercise(exercise_id).key for (exercise_id,) in exercise_ids}
        keys.update(ProgressTarget.quiz(quiz_id).key for (quiz_id,) in quiz_ids)
        return keys

    def completed_items(self, db: Session, user_id: int, course_id: int) -> Set[str]:
        rows = db.query(UserProgress.target_key).filter(
            UserProgress.user_id == user_id,
            UserProgress.course_id == course_id,
            UserProgress.status == ProgressStatus.COMPLETED.value,
        ).all()
        return {key for (key,) in rows}

    def is_course_complete(self, db: Session, user_id: int, course_id: int) -> bool:
        required = self.graded_items(db, course_id)
        if not required:
            return False
        return required <= self.completed_items(db, user_id, course_id)

    def on_progress(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        change: Optional[ProgressChange],
    ) -> Optional[UserProgress]:
        """
        Record course completion after an item is newly completed

        Returns:
            The course-level record when it was newly completed, else None
        """
        if change is None or not change.newly_completed:
            return None
        if change.record.target_key == ProgressTarget.course().key:
            return None

        if not self.is_course_complete(db, user_id, course_id):
            return None

        course_change = progress_service.record(
            db,
            user_id,
            course_id,
            ProgressTarget.course(),
            ProgressStatus.COMPLETED,
            self.COURSE_COMPLETION_POINTS,
        )
        db.commit()

        if not course_change.newly_completed:
            return None

        logger.info(f"Course {course_id} completed by user {user_id}")
        return course_change.record


# Global instance
completion_service = CompletionService()
