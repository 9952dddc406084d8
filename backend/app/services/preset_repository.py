"""Repository for community preset records and their status lifecycle.

All methods operate on a caller-supplied SQLAlchemy ``Session`` and only
flush; the route that owns the request commits or rolls back.

Status machine::

    pending  -> approved | rejected | flagged
    flagged  -> approved | rejected
    approved -> flagged | hidden
    rejected -> (terminal)
    hidden   -> approved
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import func, or_, select
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from backend.app.core.clock import utcnow
from backend.app.core.errors import handle_operational_error
from backend.app.core.logging import log_event
from backend.app.models.moderation import ModerationAction
from backend.app.models.moderation_log_record import ModerationLogRecord
from backend.app.models.preset_record import PresetRecord
from backend.app.models.presets import (
    CommunityPreset,
    PresetEdit,
    PresetFilters,
    PresetSnapshot,
    PresetSort,
    PresetSubmission,
)
from backend.app.services.dye_signature import signature

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"approved", "rejected", "flagged"}),
    "flagged": frozenset({"approved", "rejected"}),
    "approved": frozenset({"flagged", "hidden"}),
    "rejected": frozenset(),
    "hidden": frozenset({"approved"}),
}

# Statuses a ban cascade hides
BAN_HIDEABLE_STATUSES = ("approved", "pending", "flagged")

FEATURED_LIMIT = 10


class PresetNotFoundError(Exception):
    """Raised when a preset cannot be found by id."""


class InvalidTransitionError(Exception):
    """Raised when a status change violates the lifecycle rules."""


# ---------------------------------------------------------------------------
# Conversion
# ---------------------------------------------------------------------------


def _load_json_list(raw: str | None) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except (json.JSONDecodeError, TypeError):
        return []
    return value if isinstance(value, list) else []


def _load_snapshot(raw: str | None) -> PresetSnapshot | None:
    if not raw:
        return None
    try:
        return PresetSnapshot.model_validate_json(raw)
    except ValueError:
        logger.warning("preset_snapshot_unreadable: len=%d", len(raw))
        return None


def _aware(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value


def record_to_preset(row: PresetRecord) -> CommunityPreset:
    """Convert a DB row to its public :class:`CommunityPreset` form."""
    return CommunityPreset(
        id=row.id,
        name=row.name,
        description=row.description,
        category_id=row.category_id,
        dyes=_load_json_list(row.dyes),
        tags=_load_json_list(row.tags),
        author_discord_id=row.author_discord_id,
        author_name=row.author_name,
        vote_count=row.vote_count,
        status=row.status,
        is_curated=row.is_curated,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
        dye_signature=row.dye_signature,
        previous_values=_load_snapshot(row.previous_values),
    )


def _flush(db: Session, operation: str) -> None:
    try:
        db.flush()
    except OperationalError as exc:
        handle_operational_error(exc, operation)


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def create_preset(
    db: Session,
    submission: PresetSubmission,
    *,
    author_id: str | None,
    author_name: str | None,
    status: str,
    now: datetime | None = None,
) -> PresetRecord:
    """Insert a new preset with ``vote_count=0`` and flush it.

    The self-vote that usually follows is cast by the submission flow, not
    here.
    """
    now = now or utcnow()
    record = PresetRecord(
        id=str(uuid.uuid4()),
        name=submission.name,
        description=submission.description,
        category_id=str(submission.category_id),
        dyes=json.dumps(submission.dyes),
        tags=json.dumps(submission.tags),
        author_discord_id=author_id,
        author_name=author_name,
        vote_count=0,
        status=status,
        is_curated=False,
        created_at=now,
        updated_at=now,
        dye_signature=signature(submission.dyes),
    )
    db.add(record)
    _flush(db, "create_preset")
    log_event(
        logger, "info", "preset_submitted",
        preset_id=record.id,
        status=status,
        category=record.category_id,
        dyes=len(submission.dyes),
        name_len=len(submission.name),
    )
    return record


def transition_status(
    db: Session,
    preset_id: str,
    new_status: str,
    *,
    now: datetime | None = None,
) -> PresetRecord:
    """Move a preset to *new_status* if the lifecycle allows it.

    Leaving ``flagged`` or ``hidden`` discards any edit snapshot. Leaving
    ``hidden`` also discards the ban bookkeeping, so a later unban does not
    touch it.

    Raises:
        PresetNotFoundError: If *preset_id* does not exist.
        InvalidTransitionError: If the move is not allowed.
    """
    record = get_preset_record(db, preset_id)
    old_status = record.status
    if new_status not in ALLOWED_TRANSITIONS.get(old_status, frozenset()):
        raise InvalidTransitionError(
            f"Cannot move preset from '{old_status}' to '{new_status}'"
        )

    if old_status in ("flagged", "hidden"):
        record.previous_values = None
    if old_status == "hidden":
        record.hidden_from_status = None
        record.hidden_by_ban_id = None

    record.status = new_status
    record.updated_at = now or utcnow()
    _flush(db, "transition_status")
    log_event(
        logger, "info", "preset_status_changed",
        preset_id=preset_id, from_status=old_status, to_status=new_status,
    )
    return record


def _snapshot(record: PresetRecord) -> str:
    snapshot = PresetSnapshot(
        name=record.name,
        description=record.description,
        tags=_load_json_list(record.tags),
        dyes=_load_json_list(record.dyes),
    )
    return snapshot.model_dump_json()


def apply_edit(
    db: Session,
    preset_id: str,
    edit: PresetEdit,
    *,
    flagged: bool,
    now: datetime | None = None,
) -> PresetRecord:
    """Apply an author's edit.

    A flagged edit of an approved preset snapshots the current editable
    fields into ``previous_values`` and moves the preset to ``flagged``. An
    already flagged preset keeps its existing snapshot. Other statuses keep
    their status.
    """
    record = get_preset_record(db, preset_id)
    old_status = record.status

    if flagged and old_status == "approved":
        record.previous_values = _snapshot(record)
        record.status = "flagged"

    if edit.name is not None:
        record.name = edit.name
    if edit.description is not None:
        record.description = edit.description
    if edit.tags is not None:
        record.tags = json.dumps(edit.tags)
    if edit.dyes is not None:
        record.dyes = json.dumps(edit.dyes)
        record.dye_signature = signature(edit.dyes)
    record.updated_at = now or utcnow()

    _flush(db, "apply_edit")
    log_event(
        logger, "info", "preset_edited",
        preset_id=preset_id,
        fields=",".join(sorted(edit.model_dump(exclude_none=True))),
        flagged=flagged,
        status=record.status,
    )
    if record.status != old_status:
        log_event(
            logger, "info", "preset_status_changed",
            preset_id=preset_id, from_status=old_status, to_status=record.status,
        )
    return record


def revert_preset(
    db: Session,
    preset_id: str,
    *,
    now: datetime | None = None,
) -> PresetRecord:
    """Restore the pre-edit snapshot, clear it, and approve the preset.

    Raises:
        PresetNotFoundError: If *preset_id* does not exist.
        InvalidTransitionError: If there is no snapshot to restore or the
            preset is not flagged.
    """
    record = get_preset_record(db, preset_id)
    snapshot = _load_snapshot(record.previous_values)
    if snapshot is None:
        raise InvalidTransitionError("Preset has no previous values to revert to")
    if record.status != "flagged":
        raise InvalidTransitionError(
            f"Only flagged presets can be reverted (status is '{record.status}')"
        )

    record.name = snapshot.name
    record.description = snapshot.description
    record.tags = json.dumps(snapshot.tags)
    record.dyes = json.dumps(snapshot.dyes)
    record.dye_signature = signature(snapshot.dyes)
    record.previous_values = None
    old_status = record.status
    record.status = "approved"
    record.updated_at = now or utcnow()

    _flush(db, "revert_preset")
    log_event(
        logger, "info", "preset_reverted",
        preset_id=preset_id, from_status=old_status,
    )
    return record


def hide_for_ban(
    db: Session,
    author_id: str,
    ban_id: str,
    *,
    now: datetime | None = None,
) -> list[PresetRecord]:
    """Hide every visible preset by *author_id*, remembering the prior status."""
    now = now or utcnow()
    records = (
        db.query(PresetRecord)
        .filter(
            PresetRecord.author_discord_id == author_id,
            PresetRecord.status.in_(BAN_HIDEABLE_STATUSES),
        )
        .all()
    )
    for record in records:
        record.hidden_from_status = record.status
        record.hidden_by_ban_id = ban_id
        record.status = "hidden"
        record.updated_at = now
    _flush(db, "hide_for_ban")
    return records


def restore_after_ban(
    db: Session,
    ban_id: str,
    *,
    now: datetime | None = None,
) -> list[PresetRecord]:
    """Undo the cascade of *ban_id*.

    Presets return to the status they had before the ban hid them. Presets a
    moderator has already moved out of ``hidden`` are no longer tracked and
    are left alone.
    """
    records = (
        db.query(PresetRecord)
        .filter(
            PresetRecord.hidden_by_ban_id == ban_id,
            PresetRecord.status == "hidden",
        )
        .all()
    )
    now = now or utcnow()
    for record in records:
        record.status = record.hidden_from_status or "approved"
        record.hidden_from_status = None
        record.hidden_by_ban_id = None
        record.updated_at = now
    _flush(db, "restore_after_ban")
    return records


def record_moderation_action(
    db: Session,
    preset_id: str,
    *,
    moderator_id: str,
    action: ModerationAction | str,
    reason: str | None = None,
    now: datetime | None = None,
) -> ModerationLogRecord:
    """Append one entry to the moderation audit trail."""
    entry = ModerationLogRecord(
        preset_id=preset_id,
        moderator_discord_id=moderator_id,
        action=str(action),
        reason=reason,
        created_at=now or utcnow(),
    )
    db.add(entry)
    _flush(db, "record_moderation_action")
    return entry


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def get_preset_record(db: Session, preset_id: str) -> PresetRecord:
    """Fetch a preset row by id.

    Raises:
        PresetNotFoundError: If no preset with *preset_id* exists.
    """
    record = db.get(PresetRecord, preset_id)
    if record is None:
        raise PresetNotFoundError(f"Preset not found: id={preset_id}")
    return record


def get_preset(db: Session, preset_id: str) -> CommunityPreset:
    return record_to_preset(get_preset_record(db, preset_id))


def _ordering(sort: PresetSort) -> tuple:
    if sort == PresetSort.recent:
        return (PresetRecord.created_at.desc(), PresetRecord.id.desc())
    if sort == PresetSort.name:
        return (PresetRecord.name.asc(), PresetRecord.created_at.desc())
    return (
        PresetRecord.vote_count.desc(),
        PresetRecord.created_at.desc(),
        PresetRecord.id.desc(),
    )


def _contains(term: str) -> str:
    """LIKE pattern matching *term* literally anywhere in a value."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def list_presets(
    db: Session, filters: PresetFilters,
) -> tuple[list[PresetRecord], int]:
    """Return one page of presets matching *filters* and the total count.

    Search is a case-insensitive substring match over name, description and
    tags. Tags are matched element by element, never against their JSON
    encoding.
    """
    query = db.query(PresetRecord).filter(
        PresetRecord.status == str(filters.status),
    )
    if filters.category is not None:
        query = query.filter(PresetRecord.category_id == str(filters.category))
    if filters.is_curated is not None:
        query = query.filter(PresetRecord.is_curated.is_(filters.is_curated))
    if filters.search:
        pattern = _contains(filters.search.strip())
        tag = func.json_each(PresetRecord.tags).table_valued("value").alias("tag")
        tag_match = (
            select(tag.c.value)
            .where(tag.c.value.ilike(pattern, escape="\\"))
            .exists()
        )
        query = query.filter(
            or_(
                PresetRecord.name.ilike(pattern, escape="\\"),
                PresetRecord.description.ilike(pattern, escape="\\"),
                tag_match,
            )
        )

    total = query.count()
    offset = (filters.page - 1) * filters.limit
    rows = (
        query.order_by(*_ordering(filters.sort))
        .offset(offset)
        .limit(filters.limit)
        .all()
    )
    return list(rows), total


def get_featured_presets(
    db: Session, *, limit: int = FEATURED_LIMIT,
) -> list[PresetRecord]:
    """Top approved presets by votes, newest first on ties."""
    return list(
        db.query(PresetRecord)
        .filter(PresetRecord.status == "approved")
        .order_by(*_ordering(PresetSort.popular))
        .limit(limit)
        .all()
    )


def get_pending_presets(db: Session) -> list[PresetRecord]:
    """The moderation queue: pending and flagged presets, oldest first."""
    return list(
        db.query(PresetRecord)
        .filter(PresetRecord.status.in_(("pending", "flagged")))
        .order_by(PresetRecord.created_at.asc(), PresetRecord.id.asc())
        .all()
    )


def list_presets_by_author(db: Session, author_id: str) -> list[PresetRecord]:
    """Every preset *author_id* submitted, in any status, newest first."""
    return list(
        db.query(PresetRecord)
        .filter(PresetRecord.author_discord_id == author_id)
        .order_by(PresetRecord.created_at.desc())
        .all()
    )


def count_presets_by_category(db: Session) -> dict[str, int]:
    """Approved preset count per category id; empty categories are absent."""
    rows = (
        db.query(PresetRecord.category_id, func.count(PresetRecord.id))
        .filter(PresetRecord.status == "approved")
        .group_by(PresetRecord.category_id)
        .all()
    )
    return {category_id: count for category_id, count in rows}


def get_moderation_history(
    db: Session, preset_id: str,
) -> list[ModerationLogRecord]:
    """Audit entries for one preset, oldest first."""
    return list(
        db.query(ModerationLogRecord)
        .filter(ModerationLogRecord.preset_id == preset_id)
        .order_by(ModerationLogRecord.created_at.asc(), ModerationLogRecord.id.asc())
        .all()
    )
