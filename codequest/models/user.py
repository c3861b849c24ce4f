"""
User model - learners and their materialized point balance
"""
from sqlalchemy import Column, Integer, String, TIMESTAMP, CheckConstraint, func
from codequest.database import Base, utcnow


class User(Base):
    """
    Users table - total_points is owned by the points ledger and always
    equals the sum of points_earned over the user's progress records
    """
    __tablename__ = "users"
    __table_args__ = (
        CheckConstraint("total_points >= 0", name="ck_user_total_points_nonneg"),
    )

    id = Column(Integer, primary_key=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(String(20), nullable=False, default="student")
    total_points = Column(Integer, nullable=False, default=0)
    created_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())
    updated_at = Column(TIMESTAMP, default=utcnow, server_default=func.now())

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, total_points={self.total_points})>"
