"""
Code submission service
Grades code through the code runner and records the outcome
"""
import logging
from typing import Any, List, Optional

from sqlalchemy.orm import Session

from codequest.database import utcnow
from codequest.exceptions import MalformedTestData, NotFound
from codequest.models import CodeSubmission, Exercise, User
from codequest.schemas.badge import UserBadgeResponse
from codequest.schemas.grading import Verdict
from codequest.schemas.progress import ProgressStatus, ProgressTarget
from codequest.schemas.submission import SubmissionResult, SubmissionStatus
from codequest.services.code_runner import CodeRunner
from codequest.services.events import ProgressEvent, progress_events
from codequest.services.grading_service import grading_service
from codequest.services.progress_service import progress_service

logger = logging.getLogger(__name__)


class SubmissionService:
    """
    Service for code submissions

    Flow:
    1. Grade against the exercise's test cases (binary verdict)
    2. Persist the submission whatever the verdict
    3. A passing verdict is reconciled into exercise progress and credited
    4. Post-commit subscribers run (course completion, badges, cache)

    Steps 3 and 4 are best effort: their failures are logged and the
    verdict is still returned.
    """

    def get_exercise(self, db: Session, exercise_id: int) -> Exercise:
        exercise = db.get(Exercise, exercise_id)
        if exercise is None:
            raise NotFound("Exercise", exercise_id)
        return exercise

    async def grade_submission(
        self,
        db: Session,
        runner: CodeRunner,
        exercise_id: int,
        code: str,
    ) -> Verdict:
        """
        Grade code against an exercise without recording anything

        Raises:
            NotFound: if the exercise does not exist
        """
        exercise = self.get_exercise(db, exercise_id)
        test_cases = exercise.test_cases
        language = exercise.lesson.course.language
        db.commit()

        return await self._grade(runner, exercise_id, test_cases, language, code)

    async def submit_code(
        self,
        db: Session,
        runner: CodeRunner,
        user_id: int,
        exercise_id: int,
        code: str,
    ) -> SubmissionResult:
        """
        Grade and record a learner's code submission

        Args:
            db: Database session
            runner: Code runner used to execute the code
            user_id: Submitting user
            exercise_id: Exercise being attempted
            code: Submitted source code

        Returns:
            Verdict, stored status, credited points and newly granted badges

        Raises:
            NotFound: if the exercise or user does not exist
        """
        exercise = self.get_exercise(db, exercise_id)
        if db.get(User, user_id) is None:
            raise NotFound("User", user_id)

        course_id = exercise.lesson.course_id
        language = exercise.lesson.course.language
        test_cases = exercise.test_cases
        points_reward = exercise.points_reward

        # No transaction may stay open while the runner is awaited
        db.commit()

        verdict = await self._grade(runner, exercise_id, test_cases, language, code)

        status = SubmissionStatus.PASSED if verdict.passed else SubmissionStatus.FAILED
        submission = CodeSubmission(
            user_id=user_id,
            exercise_id=exercise_id,
            code=code,
            status=status.value,
            test_results=verdict.model_dump(mode="json"),
            submitted_at=utcnow(),
        )
        db.add(submission)
        db.commit()
        db.refresh(submission)

        logger.info(
            f"Submission {submission.id} graded: user={user_id}, exercise={exercise_id}, "
            f"status={status.value}, cases={verdict.correct_count}/{verdict.total_count}"
        )

        change = None
        if verdict.passed:
            change = progress_service.record_attempt(
                db,
                user_id,
                course_id,
                ProgressTarget.exercise(exercise_id),
                ProgressStatus.COMPLETED,
                points_reward,
            )

        report = progress_events.dispatch(db, ProgressEvent(user_id=user_id, course_id=course_id, change=change))

        result = SubmissionResult(
            submission_id=submission.id,
            status=status,
            test_results=verdict,
            points_awarded=change.credited if change else 0,
            new_badges=[UserBadgeResponse.model_validate(grant) for grant in report.result("badges") or []],
        )
        # Release the read locks taken while building the result
        db.commit()
        return result

    def list_submissions(
        self,
        db: Session,
        user_id: int,
        exercise_id: Optional[int] = None,
    ) -> List[CodeSubmission]:
        """
        A user's submission history, newest first

        Raises:
            NotFound: if the user does not exist
        """
        if db.get(User, user_id) is None:
            raise NotFound("User", user_id)

        query = db.query(CodeSubmission).filter(CodeSubmission.user_id == user_id)
        if exercise_id is not None:
            query = query.filter(CodeSubmission.exercise_id == exercise_id)
        return query.order_by(CodeSubmission.submitted_at.desc(), CodeSubmission.id.desc()).all()

    async def _grade(
        self,
        runner: CodeRunner,
        exercise_id: int,
        raw_test_cases: Any,
        language: str,
        code: str,
    ) -> Verdict:
        """Runs without touching the session"""
        try:
            test_cases = grading_service.parse_test_cases(raw_test_cases)
        except MalformedTestData as e:
            logger.warning(f"Exercise {exercise_id} has malformed test data: {e.message}")
            return grading_service.malformed_verdict(e)

        results = await runner.execute(code, [case.input for case in test_cases], language=language)
        return grading_service.grade_code(test_cases, results)


# Global instance
submission_service = SubmissionService()
