"""Ban registry and its cascade onto preset visibility.

A ban hides the author's approved, pending and flagged presets in the same
transaction that creates it. Each hidden preset remembers the status it had
and the ban that hid it, so an unban puts it back exactly where it was.
Presets are attributed to Discord ids only; a ban on an XIVAuth id alone
blocks the caller but has no presets to hide.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session

from backend.app.core.clock import utcnow
from backend.app.core.errors import handle_operational_error
from backend.app.core.logging import log_event
from backend.app.models.ban_record import BanRecord
from backend.app.models.bans import BanIdentity
from backend.app.models.moderation import ModerationAction
from backend.app.services.preset_repository import (
    hide_for_ban,
    record_moderation_action,
    restore_after_ban,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20


class AlreadyBannedError(Exception):
    """Raised when an identifier already has an active ban."""


class NotBannedError(Exception):
    """Raised when an unban finds no active ban for the identity."""


def _active_filter(discord_id: str | None, xivauth_id: str | None):
    clauses = []
    if discord_id is not None:
        clauses.append(BanRecord.discord_id == discord_id)
    if xivauth_id is not None:
        clauses.append(BanRecord.xivauth_id == xivauth_id)
    return BanRecord.unbanned_at.is_(None), or_(*clauses)


def get_active_ban(
    db: Session,
    *,
    discord_id: str | None = None,
    xivauth_id: str | None = None,
) -> BanRecord | None:
    """Return the oldest active ban matching either identifier."""
    if discord_id is None and xivauth_id is None:
        return None
    return (
        db.query(BanRecord)
        .filter(*_active_filter(discord_id, xivauth_id))
        .order_by(BanRecord.banned_at.asc())
        .first()
    )


def is_banned(
    db: Session,
    *,
    discord_id: str | None = None,
    xivauth_id: str | None = None,
) -> bool:
    return get_active_ban(db, discord_id=discord_id, xivauth_id=xivauth_id) is not None


def ban_user(
    db: Session,
    identity: BanIdentity,
    *,
    username: str,
    moderator_id: str,
    reason: str,
    now: datetime | None = None,
) -> tuple[BanRecord, int]:
    """Create a ban and hide the author's visible presets.

    Returns the ban row and the number of presets hidden.

    Raises:
        AlreadyBannedError: If any identifier of *identity* is already banned.
    """
    now = now or utcnow()
    if get_active_ban(
        db, discord_id=identity.discord_id, xivauth_id=identity.xivauth_id,
    ) is not None:
        raise AlreadyBannedError("User already has an active ban")

    ban = BanRecord(
        id=str(uuid.uuid4()),
        discord_id=identity.discord_id,
        xivauth_id=identity.xivauth_id,
        username=username,
        moderator_discord_id=moderator_id,
        reason=reason,
        banned_at=now,
    )
    db.add(ban)
    try:
        db.flush()
    except IntegrityError as exc:
        # Lost a race against a concurrent ban of the same identifier
        raise AlreadyBannedError("User already has an active ban") from exc
    except OperationalError as exc:
        handle_operational_error(exc, "ban_user")

    hidden = []
    if identity.discord_id is not None:
        hidden = hide_for_ban(db, identity.discord_id, ban.id, now=now)
        for preset in hidden:
            record_moderation_action(
                db, preset.id,
                moderator_id=moderator_id,
                action=ModerationAction.hide,
                reason=f"Author banned: {reason}"[:500],
                now=now,
            )

    log_event(
        logger, "info", "user_banned",
        ban_id=ban.id,
        discord_id=identity.discord_id,
        xivauth_id=identity.xivauth_id,
        moderator_id=moderator_id,
        presets_hidden=len(hidden),
    )
    return ban, len(hidden)


def unban_user(
    db: Session,
    identity: BanIdentity,
    *,
    moderator_id: str,
    now: datetime | None = None,
) -> tuple[BanRecord, int]:
    """Close the active ban and restore the presets it hid.

    Returns the closed ban row and the number of presets restored.

    Raises:
        NotBannedError: If no identifier of *identity* has an active ban.
    """
    now = now or utcnow()
    ban = get_active_ban(
        db, discord_id=identity.discord_id, xivauth_id=identity.xivauth_id,
    )
    if ban is None:
        raise NotBannedError("No active ban found for this user")

    ban.unbanned_at = now
    ban.unban_moderator_discord_id = moderator_id
    try:
        db.flush()
    except OperationalError as exc:
        handle_operational_error(exc, "unban_user")

    restored = restore_after_ban(db, ban.id, now=now)
    for preset in restored:
        record_moderation_action(
            db, preset.id,
            moderator_id=moderator_id,
            action=ModerationAction.restore,
            reason=f"Author unbanned; restored to {preset.status}",
            now=now,
        )

    log_event(
        logger, "info", "user_unbanned",
        ban_id=ban.id,
        discord_id=ban.discord_id,
        xivauth_id=ban.xivauth_id,
        moderator_id=moderator_id,
        presets_restored=len(restored),
    )
    return ban, len(restored)


def list_active_bans(
    db: Session,
    *,
    page: int = 1,
    limit: int = DEFAULT_PAGE_SIZE,
) -> tuple[list[BanRecord], int]:
    """Active bans, newest first, with the total active count."""
    query = db.query(BanRecord).filter(BanRecord.unbanned_at.is_(None))
    total = query.count()
    rows = (
        query.order_by(BanRecord.banned_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return list(rows), total
