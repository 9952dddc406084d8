"""Idempotent per-user voting with a denormalized vote count.

A vote is an ``INSERT ... ON CONFLICT DO NOTHING`` on the
``(preset_id, user_discord_id)`` primary key. Only the request whose insert
actually lands increments ``presets.vote_count``, and both statements run
in the caller's transaction, so concurrent duplicates produce one row and
one increment. Unvote mirrors this with ``DELETE`` and a decrement floored
at zero.
"""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import case, delete, func, select, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from backend.app.core.clock import utcnow
from backend.app.core.errors import handle_operational_error
from backend.app.core.logging import log_event
from backend.app.models.preset_record import PresetRecord
from backend.app.models.vote_record import VoteRecord
from backend.app.models.votes import VoteResult
from backend.app.services.preset_repository import PresetNotFoundError

logger = logging.getLogger(__name__)

# Presets in these states are invisible to voters and answer as not found.
UNVOTABLE_STATUSES = ("hidden", "rejected")


def _require_votable(db: Session, preset_id: str) -> None:
    status = db.execute(
        select(PresetRecord.status).where(PresetRecord.id == preset_id)
    ).scalar_one_or_none()
    if status is None or status in UNVOTABLE_STATUSES:
        raise PresetNotFoundError(f"Preset not found: id={preset_id}")


def _current_count(db: Session, preset_id: str) -> int:
    count = db.execute(
        select(PresetRecord.vote_count).where(PresetRecord.id == preset_id)
    ).scalar_one_or_none()
    if count is None:
        raise PresetNotFoundError(f"Preset not found: id={preset_id}")
    return count


def cast_vote(
    db: Session,
    preset_id: str,
    voter_id: str,
    *,
    now: datetime | None = None,
) -> VoteResult:
    """Record *voter_id*'s vote on *preset_id*.

    A repeated vote is a no-op reporting ``already_voted=True`` and the
    unchanged count.

    Raises:
        PresetNotFoundError: If *preset_id* does not exist or is
            hidden or rejected.
        StorageError: If the store rejects the write.
    """
    try:
        _require_votable(db, preset_id)
        inserted = db.execute(
            insert(VoteRecord.__table__)
            .values(
                preset_id=preset_id,
                user_discord_id=voter_id,
                created_at=now or utcnow(),
            )
            .on_conflict_do_nothing(
                index_elements=["preset_id", "user_discord_id"],
            )
        ).rowcount
        if inserted == 1:
            db.execute(
                update(PresetRecord)
                .where(PresetRecord.id == preset_id)
                .values(vote_count=PresetRecord.vote_count + 1)
                .execution_options(synchronize_session=False)
            )
        count = _current_count(db, preset_id)
    except OperationalError as exc:
        handle_operational_error(exc, "cast_vote")

    if inserted != 1:
        return VoteResult(success=False, already_voted=True, new_vote_count=count)

    _expire_preset(db, preset_id)
    log_event(
        logger, "info", "vote_added",
        preset_id=preset_id, new_vote_count=count,
    )
    return VoteResult(success=True, new_vote_count=count)


def remove_vote(db: Session, preset_id: str, voter_id: str) -> VoteResult:
    """Withdraw *voter_id*'s vote; a missing vote reports ``already_voted=False``.

    Raises:
        PresetNotFoundError: If *preset_id* does not exist or is
            hidden or rejected.
        StorageError: If the store rejects the write.
    """
    try:
        _require_votable(db, preset_id)
        deleted = db.execute(
            delete(VoteRecord.__table__)
            .where(
                VoteRecord.preset_id == preset_id,
                VoteRecord.user_discord_id == voter_id,
            )
        ).rowcount
        if deleted == 1:
            db.execute(
                update(PresetRecord)
                .where(PresetRecord.id == preset_id)
                .values(
                    vote_count=case(
                        (PresetRecord.vote_count > 0, PresetRecord.vote_count - 1),
                        else_=0,
                    )
                )
                .execution_options(synchronize_session=False)
            )
        count = _current_count(db, preset_id)
    except OperationalError as exc:
        handle_operational_error(exc, "remove_vote")

    if deleted != 1:
        return VoteResult(success=False, already_voted=False, new_vote_count=count)

    _expire_preset(db, preset_id)
    log_event(
        logger, "info", "vote_removed",
        preset_id=preset_id, new_vote_count=count,
    )
    return VoteResult(success=True, already_voted=True, new_vote_count=count)


def has_voted(db: Session, preset_id: str, voter_id: str) -> bool:
    found = db.execute(
        select(VoteRecord.preset_id).where(
            VoteRecord.preset_id == preset_id,
            VoteRecord.user_discord_id == voter_id,
        )
    ).first()
    return found is not None


def recount_votes(db: Session, preset_id: str) -> int:
    """Reset ``vote_count`` to the number of vote rows and return it."""
    actual = db.execute(
        select(func.count()).select_from(VoteRecord).where(
            VoteRecord.preset_id == preset_id,
        )
    ).scalar_one()
    record = db.get(PresetRecord, preset_id)
    if record is None:
        raise PresetNotFoundError(f"Preset not found: id={preset_id}")
    if record.vote_count != actual:
        logger.warning(
            "vote_count_repaired: preset_id=%s stored=%d actual=%d",
            preset_id,
            record.vote_count,
            actual,
        )
        record.vote_count = actual
        try:
            db.flush()
        except OperationalError as exc:
            handle_operational_error(exc, "recount_votes")
    return actual


def _expire_preset(db: Session, preset_id: str) -> None:
    """Drop any identity-map copy so the next ORM read sees the new count."""
    record = db.identity_map.get(db.identity_key(PresetRecord, preset_id))
    if record is not None:
        db.expire(record, ["vote_count"])
