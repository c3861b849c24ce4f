"""
Pydantic schemas for user statistics and the leaderboard
"""
from pydantic import BaseModel, computed_field


class UserStats(BaseModel):
    """The aggregates badge rules are evaluated against"""
    user_id: int
    total_points: int
    courses_completed: int
    exercises_completed: int


class LeaderboardEntry(BaseModel):
    """One leaderboard row"""
    rank: int
    user_id: int
    username: str
    total_points: int
    badge_count: int
    courses_completed: int


class LedgerAudit(BaseModel):
    """Result of recomputing a user's balance from progress records"""
    user_id: int
    total_points: int
    progress_points: int

    @computed_field
    @property
    def consistent(self) -> bool:
        return self.total_points == self.progress_points
