"""
Quiz attempt service
Grades answers against the answer key and records the attempt
"""
import logging
from typing import Any, List, Optional, Tuple

from sqlalchemy.orm import Session

from codequest.database import utcnow
from codequest.exceptions import EmptyQuiz, NotFound
from codequest.models import Quiz, QuizAttempt, QuizQuestion, User
from codequest.schemas.badge import UserBadgeResponse
from codequest.schemas.grading import Verdict
from codequest.schemas.progress import ProgressStatus, ProgressTarget
from codequest.schemas.quiz import QuizGradingResponse
from codequest.services.events import ProgressEvent, progress_events
from codequest.services.grading_service import grading_service
from codequest.services.progress_service import progress_service

logger = logging.getLogger(__name__)


class QuizService:
    """
    Service for quiz attempts

    Malformed answer payloads are rejected before anything is stored. A
    well-formed attempt is always persisted, then reconciled into quiz
    progress with the proportional points candidate (best attempt wins).
    """

    def get_quiz(self, db: Session, quiz_id: int) -> Quiz:
        quiz = db.get(Quiz, quiz_id)
        if quiz is None:
            raise NotFound("Quiz", quiz_id)
        return quiz

    def get_questions(self, db: Session, quiz_id: int) -> List[QuizQuestion]:
        """
        Ordered questions of a quiz

        Raises:
            NotFound: if the quiz does not exist
        """
        self.get_quiz(db, quiz_id)
        return (
            db.query(QuizQuestion)
            .filter(QuizQuestion.quiz_id == quiz_id)
            .order_by(QuizQuestion.order_index, QuizQuestion.id)
            .all()
        )

    def grade_attempt(
        self, db: Session, quiz_id: int, raw_answers: Any
    ) -> Tuple[Quiz, List[Optional[str]], Verdict]:
        """
        Grade answers without recording anything

        Raises:
            NotFound: if the quiz does not exist
            EmptyQuiz: if the quiz has no questions
            MalformedAnswers: if the payload is not a list of strings/nulls
        """
        quiz = self.get_quiz(db, quiz_id)
        questions = self.get_questions(db, quiz_id)
        if not questions:
            raise EmptyQuiz(quiz_id)

        answers = grading_service.parse_answers(raw_answers)
        verdict = grading_service.grade_quiz([q.correct_answer for q in questions], answers)
        return quiz, answers, verdict

    def submit_quiz(self, db: Session, user_id: int, quiz_id: int, raw_answers: Any) -> QuizGradingResponse:
        """
        Grade and record a quiz attempt

        Args:
            db: Database session
            user_id: Submitting user
            quiz_id: Quiz being attempted
            raw_answers: Positional answers, a list or its JSON encoding

        Returns:
            Score, points candidate, credited points, breakdown and new badges

        Raises:
            NotFound: if the quiz or user does not exist
            EmptyQuiz: if the quiz has no questions
            MalformedAnswers: if the answer payload is unusable
        """
        self.get_quiz(db, quiz_id)
        if db.get(User, user_id) is None:
            raise NotFound("User", user_id)

        quiz, answers, verdict = self.grade_attempt(db, quiz_id, raw_answers)
        course_id = quiz.lesson.course_id

        attempt = QuizAttempt(
            user_id=user_id,
            quiz_id=quiz_id,
            answers=answers,
            results=verdict.model_dump(mode="json"),
            score=verdict.correct_count,
            total_questions=verdict.total_count,
            completed_at=utcnow(),
        )
        db.add(attempt)
        db.commit()
        db.refresh(attempt)

        points_candidate = grading_service.quiz_points(
            verdict.correct_count, verdict.total_count, quiz.points_reward
        )

        logger.info(
            f"Quiz attempt {attempt.id} graded: user={user_id}, quiz={quiz_id}, "
            f"score={verdict.correct_count}/{verdict.total_count}, candidate={points_candidate}"
        )

        change = progress_service.record_attempt(
            db,
            user_id,
            course_id,
            ProgressTarget.quiz(quiz_id),
            ProgressStatus.COMPLETED,
            points_candidate,
        )

        report = progress_events.dispatch(db, ProgressEvent(user_id=user_id, course_id=course_id, change=change))

        result = QuizGradingResponse(
            attempt_id=attempt.id,
            score=verdict.correct_count,
            total_questions=verdict.total_count,
            score_display=f"{verdict.correct_count}/{verdict.total_count}",
            percentage=verdict.percentage,
            points_candidate=points_candidate,
            points_awarded=change.credited if change else 0,
            breakdown=verdict,
            new_badges=[UserBadgeResponse.model_validate(grant) for grant in report.result("badges") or []],
        )
        db.commit()
        return result

    def list_attempts(self, db: Session, user_id: int, quiz_id: Optional[int] = None) -> List[QuizAttempt]:
        """
        A user's quiz attempts, newest first

        Raises:
            NotFound: if the user does not exist
        """
        if db.get(User, user_id) is None:
            raise NotFound("User", user_id)

        query = db.query(QuizAttempt).filter(QuizAttempt.user_id == user_id)
        if quiz_id is not None:
            query = query.filter(QuizAttempt.quiz_id == quiz_id)
        return query.order_by(QuizAttempt.completed_at.desc(), QuizAttempt.id.desc()).all()


# Global instance
quiz_service = QuizService()
