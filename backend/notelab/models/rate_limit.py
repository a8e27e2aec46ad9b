"""
Fixed-window rate limit counters.

One row per (identifier, endpoint, window). A row whose `window_start` is
older than the window length is expired and is purged on the next check.
"""

from sqlalchemy import Column, String, DateTime, Integer, Index
from datetime import datetime
from notelab.database import Base


class RateLimitRecord(Base):
    """Request counter for one client/endpoint window"""
    __tablename__ = "rate_limits"

    id = Column(Integer, primary_key=True, autoincrement=True)
    identifier = Column(String(255), nullable=False)  # usually the client IP
    endpoint = Column(String(255), nullable=False)
    request_count = Column(Integer, nullable=False, default=1)
    window_start = Column(DateTime, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index("ix_rate_limits_lookup", "identifier", "endpoint", "window_start"),
    )

    def __repr__(self):
        return (
            f"<RateLimitRecord(identifier={self.identifier}, endpoint={self.endpoint}, "
            f"count={self.request_count})>"
        )
