"""Submission and edit flows for community presets.

Submission order::

    rate limit -> duplicate lookup -> moderation -> create -> self-vote

A duplicate short-circuits into a vote on the existing preset. Flagged
content is still stored (as ``pending``) and yields a
:class:`~backend.app.services.notifier.ModerationAlert` for the caller to
dispatch after commit. The rate-limit and duplicate checks are read-then-act
and may both pass for two racing requests.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.orm import Session

from backend.app.core.clock import utcnow
from backend.app.core.logging import log_event
from backend.app.models.auth import AuthContext
from backend.app.models.moderation import ModerationPassed, ModerationResult
from backend.app.models.preset_record import PresetRecord
from backend.app.models.presets import PresetEdit, PresetSubmission
from backend.app.services.dye_signature import find_duplicate
from backend.app.services.moderation_pipeline import ModerationPipeline
from backend.app.services.notifier import ModerationAlert
from backend.app.services.preset_repository import (
    InvalidTransitionError,
    apply_edit,
    create_preset,
    get_preset_record,
    record_to_preset,
)
from backend.app.services.rate_limiter import RateLimitExceededError, check_and_consume
from backend.app.services.vote_ledger import cast_vote

logger = logging.getLogger(__name__)

UNEDITABLE_STATUSES = ("rejected", "hidden")


class DuplicatePresetError(Exception):
    """Raised when an edit would give a preset another preset's dye set."""

    def __init__(self, existing: PresetRecord) -> None:
        super().__init__(
            f"Another preset already uses this dye combination: id={existing.id}"
        )
        self.existing = existing


class NotPresetAuthorError(Exception):
    """Raised when someone other than the author tries to edit a preset."""


@dataclass
class SubmissionOutcome:
    """Result of :func:`submit_preset`.

    Exactly one of ``preset`` (created) and ``duplicate`` (existing) is set.
    """

    preset: PresetRecord | None = None
    duplicate: PresetRecord | None = None
    vote_added: bool = False
    moderation: ModerationResult | None = None
    alert: ModerationAlert | None = None


@dataclass
class EditOutcome:
    preset: PresetRecord
    moderation: ModerationResult
    alert: ModerationAlert | None = None

    @property
    def flagged(self) -> bool:
        return not isinstance(self.moderation, ModerationPassed)


def _alert_for(record: PresetRecord, moderation: ModerationResult) -> ModerationAlert:
    preset = record_to_preset(record)
    return ModerationAlert(
        preset_id=preset.id,
        preset_name=preset.name,
        description=preset.description,
        author_name=preset.author_name,
        author_id=preset.author_discord_id,
        reason=moderation.reason,
        dyes=preset.dyes,
    )


def submit_preset(
    db: Session,
    submission: PresetSubmission,
    auth: AuthContext,
    pipeline: ModerationPipeline,
    *,
    now: datetime | None = None,
) -> SubmissionOutcome:
    """Run the full submission flow for *auth*'s user.

    Raises:
        RateLimitExceededError: If the user has no submissions left today.
    """
    now = now or utcnow()
    user_id = auth.user_id

    limit = check_and_consume(db, user_id, now=now)
    if not limit.allowed:
        raise RateLimitExceededError(limit)

    existing = find_duplicate(db, submission.dyes)
    if existing is not None:
        vote = cast_vote(db, existing.id, user_id, now=now)
        log_event(
            logger, "info", "preset_duplicate",
            existing_id=existing.id,
            user_id=user_id,
            vote_added=vote.success,
        )
        db.refresh(existing)
        return SubmissionOutcome(duplicate=existing, vote_added=vote.success)

    moderation = pipeline.evaluate(submission.name, submission.description)
    status = "approved" if moderation.passed else "pending"

    record = create_preset(
        db,
        submission,
        author_id=user_id,
        author_name=auth.user_name,
        status=status,
        now=now,
    )
    cast_vote(db, record.id, user_id, now=now)
    db.refresh(record)

    outcome = SubmissionOutcome(preset=record, moderation=moderation)
    if not moderation.passed:
        outcome.alert = _alert_for(record, moderation)
    return outcome


def edit_preset(
    db: Session,
    preset_id: str,
    edit: PresetEdit,
    auth: AuthContext,
    pipeline: ModerationPipeline,
    *,
    now: datetime | None = None,
) -> EditOutcome:
    """Apply an author's edit after duplicate and moderation checks.

    Moderation runs on the name and description the preset will have after
    the edit.

    Raises:
        PresetNotFoundError: If *preset_id* does not exist.
        NotPresetAuthorError: If the caller did not author the preset.
        InvalidTransitionError: If the preset is rejected or hidden.
        DuplicatePresetError: If the new dye set matches another preset.
    """
    record = get_preset_record(db, preset_id)
    if record.author_discord_id is None or record.author_discord_id != auth.user_id:
        raise NotPresetAuthorError("You can only edit your own presets")
    if record.status in UNEDITABLE_STATUSES:
        raise InvalidTransitionError(
            f"Presets with status '{record.status}' cannot be edited"
        )

    if edit.dyes is not None:
        existing = find_duplicate(db, edit.dyes, exclude_id=preset_id)
        if existing is not None:
            raise DuplicatePresetError(existing)

    name = edit.name if edit.name is not None else record.name
    description = (
        edit.description if edit.description is not None else record.description
    )
    moderation = pipeline.evaluate(name, description)

    record = apply_edit(
        db, preset_id, edit, flagged=not moderation.passed, now=now,
    )

    outcome = EditOutcome(preset=record, moderation=moderation)
    if not moderation.passed:
        outcome.alert = _alert_for(record, moderation)
    return outcome
