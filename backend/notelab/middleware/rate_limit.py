"""
Rate limiting dependency.

Runs before authentication on every protected route. The client address is
the identifier and the request path is the endpoint, so each path has its own
budget per client.
"""

import logging

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from notelab.config import Settings, get_settings
from notelab.database import get_db
from notelab.error_handlers import RateLimitExceededError
from notelab.services.rate_limiter import RateLimiter
from notelab.utils.ip_utils import get_client_ip

logger = logging.getLogger(__name__)


class RateLimit:
    """
    Route dependency enforcing a fixed-window limit.

    Limits are looked up on the settings object by attribute name at request
    time, so overriding ``get_settings`` changes them.
    """

    def __init__(self, limit_setting: str, window_setting: str):
        self.limit_setting = limit_setting
        self.window_setting = window_setting

    async def __call__(
        self,
        request: Request,
        response: Response,
        db: Session = Depends(get_db),
        settings: Settings = Depends(get_settings),
    ) -> None:
        limit = getattr(settings, self.limit_setting)
        window_minutes = getattr(settings, self.window_setting)

        client_ip = get_client_ip(request, settings.trusted_proxies)
        request.state.client_ip = client_ip

        result = RateLimiter(db).check_and_consume(
            identifier=client_ip,
            endpoint=request.url.path,
            limit=limit,
            window_minutes=window_minutes,
        )

        if not result.allowed:
            raise RateLimitExceededError(
                remaining=result.remaining,
                reset_time=result.reset_time_iso,
                limit=result.limit,
                retry_after=result.retry_after(),
            )

        request.state.rate_limit = result
        response.headers.update(result.headers())


# Notes, categories
api_rate_limit = RateLimit("rate_limit_requests", "rate_limit_window_minutes")

# Register, login, password reset
auth_rate_limit = RateLimit("auth_rate_limit_requests", "auth_rate_limit_window_minutes")
