"""
Badge evaluation service
Grants every badge whose threshold a user's aggregates newly satisfy
"""
import logging
from typing import List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from codequest.database import utcnow
from codequest.exceptions import NotFound
from codequest.models import Badge, User, UserBadge
from codequest.schemas.analytics import UserStats
from codequest.schemas.badge import RequirementType
from codequest.services.analytics_service import analytics_service
from codequest.utils.cache import cache_service

logger = logging.getLogger(__name__)


class BadgeService:
    """
    Service for threshold-based badge unlocking

    Grants are one-shot and permanent: a held badge is never re-evaluated.
    The (user_id, badge_id) unique constraint is the backstop against two
    concurrent evaluations granting the same badge.
    """

    def qualifies(self, badge: Badge, stats: UserStats) -> bool:
        """Test the aggregate named by the badge's requirement_type"""
        try:
            requirement = RequirementType(badge.requirement_type)
        except ValueError:
            logger.warning(f"Badge {badge.id} has unknown requirement type {badge.requirement_type!r}")
            return False

        if requirement == RequirementType.POINTS:
            value = stats.total_points
        elif requirement == RequirementType.COURSES_COMPLETED:
            value = stats.courses_completed
        else:
            value = stats.exercises_completed

        return value >= badge.requirement_value

    def evaluate_badges(self, db: Session, user_id: int) -> List[UserBadge]:
        """
        Grant newly earned badges to a user

        Args:
            db: Database session
            user_id: User id

        Returns:
            Exactly the newly granted badges (possibly empty)

        Raises:
            NotFound: if the user does not exist
        """
        if db.get(User, user_id) is None:
            raise NotFound("User", user_id)

        stats = analytics_service.get_user_stats(db, user_id)

        held_ids = {
            badge_id for (badge_id,) in db.query(UserBadge.badge_id).filter(UserBadge.user_id == user_id).all()
        }
        candidates = db.query(Badge).order_by(Badge.id).all()

        granted = []
        for badge in candidates:
            if badge.id in held_ids or not self.qualifies(badge, stats):
                continue

            grant = self._grant(db, user_id, badge)
            if grant is not None:
                granted.append(grant)

        db.commit()

        if granted:
            logger.info(f"User {user_id} earned badges: {[g.badge_id for g in granted]}")
            # Leaderboard rows carry badge counts
            cache_service.invalidate_leaderboard()

        return granted

    def _grant(self, db: Session, user_id: int, badge: Badge):
        grant = UserBadge(user_id=user_id, badge_id=badge.id, earned_at=utcnow())
        try:
            with db.begin_nested():
                db.add(grant)
        except IntegrityError:
            # Granted by a concurrent evaluation
            logger.info(f"Badge {badge.id} already granted to user {user_id}")
            return None
        grant.badge = badge
        return grant

    def list_user_badges(self, db: Session, user_id: int) -> List[UserBadge]:
        """
        Badges held by a user, oldest first

        Raises:
            NotFound: if the user does not exist
        """
        if db.get(User, user_id) is None:
            raise NotFound("User", user_id)

        return (
            db.query(UserBadge)
            .filter(UserBadge.user_id == user_id)
            .order_by(UserBadge.earned_at, UserBadge.id)
            .all()
        )

    def list_badges(self, db: Session) -> List[Badge]:
        return db.query(Badge).order_by(Badge.requirement_type, Badge.requirement_value, Badge.id).all()


# Global instance
badge_service = BadgeService()
