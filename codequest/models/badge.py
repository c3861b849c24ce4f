"""
Badge and UserBadge models
"""
from sqlalchemy import (
    Column, Integer, String, Text, TIMESTAMP, ForeignKey, CheckConstraint, UniqueConstraint, func
)
from sqlalchemy.orm import relationship
from codequest.database import Base, utcnow


class Badge(Base):
    """
    Badges table - unlocked when the aggregate named by requirement_type
    reaches requirement_value
    """
    __tablename__ = "badges"
    __table_args__ = (
        CheckConstraint(
            "requirement_type IN ('points', 'courses_completed', 'exercises_completed')",
            name="ck_badge_requirement_type",
        ),
        CheckConstraint("requirement_value > 0", name="ck_badge_requirement_positive"),
    )

    id = Column(Integer, primary_key=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text, nullable=False, default="")
    icon = Column(String(255), nullable=False, default="")
    requirement_type = Column(String(30), nullable=False)
    requirement_value = Column(Integer, nullable=False)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<Badge(id={self.id}, name={self.name}, {self.requirement_type}>={self.requirement_value})>"


class UserBadge(Base):
    """
    User badges table - a (user, badge) pair is granted at most once
    """
    __tablename__ = "user_badges"
    __table_args__ = (
        UniqueConstraint("user_id", "badge_id", name="uq_user_badge"),
    )

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    badge_id = Column(Integer, ForeignKey("badges.id", ondelete="CASCADE"), nullable=False, index=True)
    earned_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    badge = relationship("Badge")

    def __repr__(self):
        return f"<UserBadge(user_id={self.user_id}, badge_id={self.badge_id})>"
