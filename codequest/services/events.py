"""
Post-commit progress events

Once a grading transaction has committed, the follow-up bookkeeping runs
as ordered subscribers. Each subscriber fails on its own: its error is
logged and recorded in the report, and the remaining subscribers still run.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from codequest.exceptions import BadgeEvaluationFailure
from codequest.services.badge_service import badge_service
from codequest.services.completion_service import completion_service
from codequest.services.progress_service import ProgressChange
from codequest.utils.cache import cache_service

logger = logging.getLogger(__name__)


@dataclass
class ProgressEvent:
    """A submission or attempt was graded and persisted"""
    user_id: int
    course_id: int
    change: Optional[ProgressChange] = None  # None when no progress was touched


@dataclass
class DispatchReport:
    results: Dict[str, Any] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)

    def result(self, name: str, default: Any = None) -> Any:
        return self.results.get(name, default)


Subscriber = Callable[[Session, ProgressEvent], Any]


class ProgressEvents:
    """Ordered dispatcher for post-commit subscribers"""

    def __init__(self):
        self._subscribers: List[Tuple[str, Subscriber]] = []

    def subscribe(self, name: str, handler: Subscriber) -> None:
        self._subscribers.append((name, handler))

    def dispatch(self, db: Session, event: ProgressEvent) -> DispatchReport:
        report = DispatchReport()
        for name, handler in self._subscribers:
            try:
                report.results[name] = handler(db, event)
            except Exception as e:
                db.rollback()
                report.errors[name] = str(e)
                logger.error(f"Subscriber '{name}' failed for user {event.user_id}: {str(e)}", exc_info=True)
        return report


def complete_courses(db: Session, event: ProgressEvent):
    return completion_service.on_progress(db, event.user_id, event.course_id, event.change)


def evaluate_badges(db: Session, event: ProgressEvent):
    try:
        return badge_service.evaluate_badges(db, event.user_id)
    except SQLAlchemyError as e:
        raise BadgeEvaluationFailure(f"Badge evaluation failed for user {event.user_id}: {e}") from e


def refresh_leaderboard(db: Session, event: ProgressEvent) -> int:
    if event.change is None or not event.change.changed:
        return 0
    return cache_service.invalidate_leaderboard()


# Global instance
progress_events = ProgressEvents()
progress_events.subscribe("course_completion", complete_courses)
progress_events.subscribe("badges", evaluate_badges)
progress_events.subscribe("leaderboard", refresh_leaderboard)
