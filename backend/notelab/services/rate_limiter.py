"""
Fixed-window rate limiter backed by the ``rate_limits`` table.

Each (identifier, endpoint) pair gets a counter row stamped with the time its
window opened. Windows are not aligned to a clock grid, so requests racing at a
window boundary can let slightly more or fewer than ``limit`` requests through.
Storage errors propagate: the limiter never silently fails open.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.orm import Session

from notelab.models import RateLimitRecord

logger = logging.getLogger(__name__)


@dataclass
class RateLimitResult:
    """Outcome of one check"""
    allowed: bool
    remaining: int
    reset_time: datetime
    limit: int

    @property
    def reset_time_iso(self) -> str:
        return self.reset_time.isoformat(timespec="milliseconds") + "Z"

    def retry_after(self, now: Optional[datetime] = None) -> int:
        """Seconds until the current window closes"""
        delta = self.reset_time - (now or datetime.utcnow())
        return max(int(delta.total_seconds()), 0)

    def headers(self) -> dict:
        return {
            "X-RateLimit-Limit": str(self.limit),
            "X-RateLimit-Remaining": str(self.remaining),
            "X-RateLimit-Reset": self.reset_time_iso,
        }


class RateLimiter:
    """Database fixed-window counter"""

    def __init__(self, db: Session):
        self.db = db

    def check_and_consume(
        self,
        identifier: str,
        endpoint: str,
        limit: int,
        window_minutes: int,
        now: Optional[datetime] = None,
    ) -> RateLimitResult:
        """
        Count one request against the (identifier, endpoint) window.

        Expired windows are purged first. A denied request does not increment
        the counter.

        Returns:
            RateLimitResult with allowed flag, remaining budget and reset time
        """
        now = now or datetime.utcnow()
        window = timedelta(minutes=window_minutes)
        cutoff = now - window

        purged = self.db.query(RateLimitRecord).filter(
            RateLimitRecord.window_start < cutoff
        ).delete(synchronize_session=False)
        if purged:
            logger.debug(f"Purged {purged} expired rate limit records")

        record = self.db.query(RateLimitRecord).filter(
            RateLimitRecord.identifier == identifier,
            RateLimitRecord.endpoint == endpoint,
            RateLimitRecord.window_start >= cutoff,
        ).order_by(RateLimitRecord.window_start.desc()).first()

        if record is not None and record.request_count >= limit:
            self.db.commit()
            logger.warning(
                f"Rate limit exceeded: {identifier} on {endpoint} "
                f"({record.request_count}/{limit})"
            )
            return RateLimitResult(
                allowed=False,
                remaining=0,
                reset_time=record.window_start + window,
                limit=limit,
            )

        if record is None:
            record = RateLimitRecord(
                identifier=identifier,
                endpoint=endpoint,
                request_count=1,
                window_start=now,
                created_at=now,
            )
            self.db.add(record)
        else:
            record.request_count = RateLimitRecord.request_count + 1

        self.db.commit()
        self.db.refresh(record)

        return RateLimitResult(
            allowed=True,
            remaining=max(limit - record.request_count, 0),
            reset_time=record.window_start + window,
            limit=limit,
        )
