"""Per-user daily submission limit.

The window is the current UTC calendar day. Usage is derived from the
user's preset rows, so this is a read-then-act check: two submissions racing
across the boundary can both pass. That looseness is accepted; nothing is
reserved here.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from backend.app.core.clock import utc_day_bounds, utcnow
from backend.app.core.logging import log_event
from backend.app.core.settings import settings
from backend.app.models.preset_record import PresetRecord
from backend.app.models.votes import RateLimitResult

logger = logging.getLogger(__name__)


class RateLimitExceededError(Exception):
    """Raised when a user has used up today's submissions."""

    def __init__(self, result: RateLimitResult) -> None:
        super().__init__(
            f"Daily submission limit reached; resets at {result.reset_at.isoformat()}"
        )
        self.result = result


def count_submissions_today(
    db: Session, user_id: str, *, now: datetime | None = None,
) -> int:
    """Count presets authored by *user_id* in the current UTC day."""
    start, end = utc_day_bounds(now or utcnow())
    return (
        db.query(func.count(PresetRecord.id))
        .filter(
            PresetRecord.author_discord_id == user_id,
            PresetRecord.created_at >= start,
            PresetRecord.created_at < end,
        )
        .scalar()
    ) or 0


def _quota(
    db: Session, user_id: str, now: datetime | None, limit: int | None,
) -> tuple[RateLimitResult, int, int]:
    limit = settings.daily_submission_limit if limit is None else limit
    _, end = utc_day_bounds(now or utcnow())
    used = count_submissions_today(db, user_id, now=now)
    result = RateLimitResult(
        allowed=used < limit,
        remaining=max(0, limit - used),
        reset_at=end.replace(tzinfo=UTC),
    )
    return result, used, limit


def check_and_consume(
    db: Session,
    user_id: str,
    *,
    now: datetime | None = None,
    limit: int | None = None,
) -> RateLimitResult:
    """Return whether *user_id* may submit another preset today.

    ``remaining`` is computed before the new submission is counted, so a
    user with 9 of 10 used is allowed with ``remaining=1``. ``reset_at`` is
    always the next UTC midnight.
    """
    result, used, limit = _quota(db, user_id, now, limit)
    if not result.allowed:
        log_event(
            logger, "warning", "rate_limit_exceeded",
            user_id=user_id, used=used, limit=limit,
        )
    return result


def get_remaining_submissions(
    db: Session, user_id: str, *, now: datetime | None = None,
) -> RateLimitResult:
    """Same numbers as :func:`check_and_consume`, for display only."""
    result, _, _ = _quota(db, user_id, now, None)
    return result
