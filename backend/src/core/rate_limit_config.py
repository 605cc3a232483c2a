"""
Rate limiting configuration and types.

This module contains the policy configuration for rate limiting - the "what" limits
to apply, separate from the "how" (enforcement logic in rate_limiter.py).

To adjust rate limits, modify RATE_LIMITS below.
"""
from dataclasses import dataclass
from enum import Enum


class LimiterTier(Enum):
    """Which limiter a request is routed to."""

    STRICT = "strict"  # unauthenticated callers and every non-admin role
    MODERATE = "moderate"  # admins


@dataclass
class RateLimitConfig:
    """Fixed-window limit for one tier."""

    max_requests: int
    window_seconds: int
    message: str


@dataclass
class RateLimitResult:
    """Result of a rate limit check with all info needed for headers."""

    allowed: bool
    limit: int  # Max requests in current window
    remaining: int  # Requests remaining in current window
    reset: int  # Unix timestamp when window resets
    retry_after: int  # Seconds until retry allowed (0 if allowed)


class RateLimitExceededError(Exception):
    """Raised when rate limit is exceeded."""

    def __init__(self, result: RateLimitResult, message: str) -> None:
        self.result = result
        self.message = message
        super().__init__(message)


# ---------------------------------------------------------------------------
# Rate Limit Policy Configuration
# ---------------------------------------------------------------------------

RATE_LIMITS: dict[LimiterTier, RateLimitConfig] = {
    LimiterTier.STRICT: RateLimitConfig(
        max_requests=100,
        window_seconds=15 * 60,
        message=(
            "Too many login attempts from this IP, "
            "please try again after a 15 minute wait"
        ),
    ),
    LimiterTier.MODERATE: RateLimitConfig(
        max_requests=200,
        window_seconds=60 * 60,
        message="Too many requests from this IP, please try again after an hour",
    ),
}

# Role assumed when an email is not registered (routes to the strict limiter)
UNKNOWN_ROLE = "user"


def tier_for_role(role: str | None) -> LimiterTier:
    """Admins get the moderate limiter; everyone else, including unknown callers, strict."""
    if role == "admin":
        return LimiterTier.MODERATE
    return LimiterTier.STRICT
