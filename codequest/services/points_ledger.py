"""
Points ledger - sole owner of User.total_points

No other module writes total_points. Credits are applied as
total_points = total_points + delta in SQL so concurrent credits never
overwrite each other.
"""
import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from codequest.database import utcnow
from codequest.exceptions import LedgerInconsistency, NotFound
from codequest.models import User, UserProgress
from codequest.schemas.analytics import LedgerAudit

logger = logging.getLogger(__name__)


class PointsLedger:
    """Credits point deltas and audits balances"""

    def credit_points(self, db: Session, user_id: int, delta: int) -> int:
        """
        Add delta points to a user's balance

        Args:
            db: Database session (caller owns the transaction)
            user_id: User id
            delta: Non-negative improvement, previous points_earned as baseline

        Returns:
            Points credited (0 performs no write)

        Raises:
            LedgerInconsistency: if the user row does not exist
        """
        if delta < 0:
            raise ValueError("Point deltas are never negative")
        if delta == 0:
            return 0

        updated = db.query(User).filter(User.id == user_id).update(
            {
                User.total_points: User.total_points + delta,
                User.updated_at: utcnow(),
            },
            synchronize_session="fetch",
        )

        if updated == 0:
            raise LedgerInconsistency(user_id, delta, "user not found")

        logger.info(f"Credited {delta} points to user {user_id}")
        return delta

    def progress_points(self, db: Session, user_id: int) -> int:
        """Sum of points_earned across the user's progress records"""
        total = db.query(func.coalesce(func.sum(UserProgress.points_earned), 0)).filter(
            UserProgress.user_id == user_id
        ).scalar()
        return int(total)

    def audit(self, db: Session, user_id: int) -> LedgerAudit:
        """
        Compare the stored balance with the balance derived from progress

        Raises:
            NotFound: if the user does not exist
        """
        user = db.get(User, user_id)
        if user is None:
            raise NotFound("User", user_id)

        audit = LedgerAudit(
            user_id=user_id,
            total_points=user.total_points,
            progress_points=self.progress_points(db, user_id),
        )
        if not audit.consistent:
            logger.warning(
                f"Ledger drift for user {user_id}: total_points={audit.total_points}, "
                f"progress sum={audit.progress_points}"
            )
        return audit


# Global instance
points_ledger = PointsLedger()
