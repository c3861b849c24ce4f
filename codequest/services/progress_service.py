"""
Progress reconciliation service
Maps grading outcomes onto the single progress record per identifying tuple
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from codequest.database import utcnow
from codequest.exceptions import EngineError, LedgerInconsistency, MalformedInput, NotFound
from codequest.models import Course, Exercise, Lesson, Quiz, User, UserProgress
from codequest.schemas.progress import ProgressStatus, ProgressTarget, TargetKind
from codequest.services.points_ledger import points_ledger

logger = logging.getLogger(__name__)


@dataclass
class ProgressChange:
    """Outcome of reconciling one attempt onto a progress record"""
    record: UserProgress
    created: bool
    previous_points: int
    previous_status: Optional[str]
    credited: int = 0
    ledger_error: Optional[str] = None

    @property
    def points_delta(self) -> int:
        return max(0, self.record.points_earned - self.previous_points)

    @property
    def newly_completed(self) -> bool:
        return (
            self.record.status == ProgressStatus.COMPLETED.value
            and self.previous_status != ProgressStatus.COMPLETED.value
        )

    @property
    def changed(self) -> bool:
        return self.created or self.points_delta > 0 or self.newly_completed


class ProgressService:
    """
    Service for the best-attempt-wins upsert

    Rules for an existing record:
    - points_earned is raised only when the new candidate is strictly
      higher, never lowered
    - status moves started -> completed, never back
    - completed_at is set on first completion and refreshed when a
      completed attempt strictly improves the points
    """

    def find(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        target: ProgressTarget,
        lock: bool = False,
    ) -> Optional[UserProgress]:
        """Look up the record for the full identifying tuple"""
        query = db.query(UserProgress).filter(
            UserProgress.user_id == user_id,
            UserProgress.course_id == course_id,
            UserProgress.target_key == target.key,
        )

        # Unset slots must be NULL, not "don't care"
        for column_name, value in target.columns().items():
            column = getattr(UserProgress, column_name)
            query = query.filter(column.is_(None) if value is None else column == value)

        if lock:
            query = query.with_for_update()

        return query.first()

    def reconcile(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        target: ProgressTarget,
        status: ProgressStatus,
        points_candidate: int,
    ) -> ProgressChange:
        """
        Insert or update the progress record for one attempt

        The row is locked for the rest of the caller's transaction. A
        concurrent first insert is detected through the unique constraint
        and falls back to the update path. Does not commit.
        """
        if points_candidate < 0:
            raise MalformedInput("Points candidate must be non-negative")

        status = ProgressStatus(status)
        record = self.find(db, user_id, course_id, target, lock=True)

        if record is None:
            record = self._insert(db, user_id, course_id, target, status, points_candidate)
            if record is not None:
                logger.info(
                    f"Progress created: user={user_id}, course={course_id}, target={target.key}, "
                    f"status={status.value}, points={points_candidate}"
                )
                return ProgressChange(
                    record=record, created=True, previous_points=0, previous_status=None
                )

            # Lost the insert race, the other writer's row is now visible
            record = self.find(db, user_id, course_id, target, lock=True)
            if record is None:
                raise NotFound("Progress target", f"{course_id}/{target.key}")

        change = ProgressChange(
            record=record,
            created=False,
            previous_points=record.points_earned,
            previous_status=record.status,
        )
        self._apply_attempt(record, status, points_candidate)
        db.flush()

        if change.changed:
            logger.info(
                f"Progress updated: user={user_id}, target={target.key}, "
                f"points {change.previous_points} -> {record.points_earned}, status={record.status}"
            )
        else:
            logger.debug(f"Progress unchanged: user={user_id}, target={target.key}")

        return change

    def record(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        target: ProgressTarget,
        status: ProgressStatus,
        points_candidate: int,
    ) -> ProgressChange:
        """
        Reconcile and credit the improvement in one unit

        The credit runs in a savepoint: if it fails the progress write is
        kept and the failure is logged, never raised. Does not commit.
        """
        change = self.reconcile(db, user_id, course_id, target, status, points_candidate)

        delta = change.points_delta
        if delta > 0:
            try:
                with db.begin_nested():
                    change.credited = points_ledger.credit_points(db, user_id, delta)
            except LedgerInconsistency as e:
                change.ledger_error = e.message
                logger.error(f"Ledger inconsistency after progress write: {e.message}")
            except SQLAlchemyError as e:
                change.ledger_error = str(e)
                logger.error(f"Failed to credit {delta} points to user {user_id}", exc_info=True)

        return change

    def record_attempt(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        target: ProgressTarget,
        status: ProgressStatus,
        points_candidate: int,
    ) -> Optional[ProgressChange]:
        """
        Record a graded attempt in its own transaction

        Runs after the submission or attempt has been committed. A failure
        is rolled back and logged, and None is returned; the grading
        result stands either way.
        """
        try:
            change = self.record(db, user_id, course_id, target, status, points_candidate)
            db.commit()
        except (EngineError, SQLAlchemyError) as e:
            db.rollback()
            logger.error(f"Progress update failed for user {user_id}, target {target.key}: {str(e)}", exc_info=True)
            return None
        return change

    def record_manual(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        target: ProgressTarget,
        status: ProgressStatus,
        points_earned: int,
    ) -> ProgressChange:
        """
        Record progress reported directly rather than through a grader

        Validates that the user, course and target exist and that the
        target belongs to the course. Does not commit.
        """
        if db.get(User, user_id) is None:
            raise NotFound("User", user_id)
        if db.get(Course, course_id) is None:
            raise NotFound("Course", course_id)

        target_course_id = self.course_of(db, target)
        if target_course_id is not None and target_course_id != course_id:
            raise MalformedInput(f"{target.kind.value} {target.target_id} does not belong to course {course_id}")

        return self.record(db, user_id, course_id, target, status, points_earned)

    def course_of(self, db: Session, target: ProgressTarget) -> Optional[int]:
        """
        Resolve the course a lesson/exercise/quiz belongs to

        Returns None for course-level targets.

        Raises:
            NotFound: if the target does not exist
        """
        if target.kind == TargetKind.COURSE:
            return None

        if target.kind == TargetKind.LESSON:
            lesson = db.get(Lesson, target.target_id)
        elif target.kind == TargetKind.EXERCISE:
            exercise = db.get(Exercise, target.target_id)
            lesson = exercise.lesson if exercise else None
        else:
            quiz = db.get(Quiz, target.target_id)
            lesson = quiz.lesson if quiz else None

        if lesson is None:
            raise NotFound(target.kind.value.capitalize(), target.target_id)
        return lesson.course_id

    def list_for_user(self, db: Session, user_id: int, course_id: Optional[int] = None) -> List[UserProgress]:
        """
        All progress records of a user, optionally within one course

        Raises:
            NotFound: if the user does not exist
        """
        if db.get(User, user_id) is None:
            raise NotFound("User", user_id)

        query = db.query(UserProgress).filter(UserProgress.user_id == user_id)
        if course_id is not None:
            query = query.filter(UserProgress.course_id == course_id)
        return query.order_by(UserProgress.created_at, UserProgress.id).all()

    def _insert(
        self,
        db: Session,
        user_id: int,
        course_id: int,
        target: ProgressTarget,
        status: ProgressStatus,
        points: int,
    ) -> Optional[UserProgress]:
        """Insert a new record; None when a concurrent insert got there first"""
        now = utcnow()
        record = UserProgress(
            user_id=user_id,
            course_id=course_id,
            target_key=target.key,
            status=status.value,
            points_earned=points,
            completed_at=now if status == ProgressStatus.COMPLETED else None,
            **target.columns(),
        )
        try:
            with db.begin_nested():
                db.add(record)
        except IntegrityError:
            logger.info(f"Concurrent progress insert detected: user={user_id}, target={target.key}")
            return None
        return record

    def _apply_attempt(self, record: UserProgress, status: ProgressStatus, points: int) -> None:
        improved = points > record.points_earned
        if improved:
            record.points_earned = points

        if status == ProgressStatus.COMPLETED:
            if record.status != ProgressStatus.COMPLETED.value or improved:
                record.status = ProgressStatus.COMPLETED.value
                record.completed_at = utcnow()


# Global instance
progress_service = ProgressService()
