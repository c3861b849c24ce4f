"""
Rate limiting for submission endpoints
"""
import time
from collections import defaultdict, deque
from typing import Deque, Dict, Optional
from fastapi import Request, HTTPException
import logging

from codequest.config import settings

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    In-memory sliding-window limiter for the grading endpoints

    Windows are per process. A multi-worker deployment needs a shared store.
    """

    def __init__(self, requests_per_minute: int = 30, requests_per_hour: int = 500):
        self.windows = ((60, requests_per_minute), (3600, requests_per_hour))
        self.history: Dict[str, Deque[float]] = defaultdict(deque)

    def _get_client_id(self, request: Request, user_id: Optional[int] = None) -> str:
        """Prefer the submitting user, fall back to client address"""
        if user_id is not None:
            return f"user:{user_id}"
        client_ip = request.client.host if request.client else "unknown"
        return f"ip:{client_ip}"

    def _cleanup_old_entries(self, now: float) -> None:
        """Remove timestamps older than the longest window"""
        cutoff = now - max(seconds for seconds, _ in self.windows)

        for client_id in list(self.history.keys()):
            timestamps = self.history[client_id]
            while timestamps and timestamps[0] <= cutoff:
                timestamps.popleft()

            # Remove empty entries
            if not timestamps:
                del self.history[client_id]

    def check(self, client_id: str, now: Optional[float] = None) -> None:
        """
        Record a request, or reject it when a window is full

        Raises:
            HTTPException: 429 if rate limit exceeded
        """
        now = time.time() if now is None else now
        self._cleanup_old_entries(now)
        timestamps = self.history[client_id]

        for seconds, limit in self.windows:
            in_window = sum(1 for ts in timestamps if ts > now - seconds)
            if in_window >= limit:
                logger.warning(f"Rate limit exceeded ({limit}/{seconds}s): {client_id}")
                raise HTTPException(
                    status_code=429,
                    detail={
                        "error": "rate_limit_exceeded",
                        "message": f"Too many submissions. Limit: {limit} per {seconds} seconds",
                        "retry_after": seconds,
                    },
                )

        timestamps.append(now)

    async def check_request(self, request: Request, user_id: Optional[int] = None) -> None:
        self.check(self._get_client_id(request, user_id))

    def reset(self) -> None:
        self.history.clear()


# Global instance
rate_limiter = RateLimiter(
    requests_per_minute=settings.RATE_LIMIT_PER_MINUTE,
    requests_per_hour=settings.RATE_LIMIT_PER_HOUR,
)
