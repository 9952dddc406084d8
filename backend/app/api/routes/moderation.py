"""Moderator queue, status decisions, revert and audit history."""

import logging
import uuid
from datetime import UTC

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backend.app.api.deps import require_moderator
from backend.app.core.errors import normalize_db_error
from backend.app.db.session import get_db
from backend.app.models.auth import AuthContext
from backend.app.models.moderation import (
    ModerationAction,
    ModerationHistoryResponse,
    ModerationLogEntry,
    ModerationResponse,
    StatusChangeRequest,
)
from backend.app.models.presets import CommunityPreset
from backend.app.services.preset_repository import (
    InvalidTransitionError,
    PresetNotFoundError,
    get_moderation_history,
    get_pending_presets,
    get_preset_record,
    record_moderation_action,
    record_to_preset,
    revert_preset,
    transition_status,
)

logger = logging.getLogger(__name__)

router = APIRouter()

_STATUS_ACTIONS = {
    "approved": ModerationAction.approve,
    "rejected": ModerationAction.reject,
    "flagged": ModerationAction.flag,
}


@router.get("/api/v1/moderation/pending", response_model=list[CommunityPreset])
def pending_queue(
    _auth: AuthContext = Depends(require_moderator),
    db: Session = Depends(get_db),
) -> list[CommunityPreset]:
    """Pending and flagged presets, oldest first."""
    return [record_to_preset(r) for r in get_pending_presets(db)]


@router.patch(
    "/api/v1/moderation/{preset_id}/status", response_model=ModerationResponse,
)
def change_status(
    preset_id: str,
    body: StatusChangeRequest,
    auth: AuthContext = Depends(require_moderator),
    db: Session = Depends(get_db),
) -> ModerationResponse:
    correlation_id = str(uuid.uuid4())
    try:
        record = transition_status(db, preset_id, body.status)
        record_moderation_action(
            db, preset_id,
            moderator_id=auth.user_id,
            action=_STATUS_ACTIONS[body.status],
            reason=body.reason,
        )
        db.commit()
    except PresetNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}")
    except InvalidTransitionError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception as exc:
        db.rollback()
        error = normalize_db_error(
            exc, operation="transition_status", correlation_id=correlation_id,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)

    logger.info(
        "moderator_decision: preset_id=%s moderator_id=%s status=%s",
        preset_id,
        auth.user_id,
        body.status,
    )
    return ModerationResponse(preset=record_to_preset(record))


@router.put(
    "/api/v1/moderation/{preset_id}/revert", response_model=ModerationResponse,
)
def revert_edit(
    preset_id: str,
    auth: AuthContext = Depends(require_moderator),
    db: Session = Depends(get_db),
) -> ModerationResponse:
    """Restore a flagged preset to the values it had before the edit."""
    correlation_id = str(uuid.uuid4())
    try:
        record = revert_preset(db, preset_id)
        record_moderation_action(
            db, preset_id,
            moderator_id=auth.user_id,
            action=ModerationAction.revert,
        )
        db.commit()
    except PresetNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}")
    except InvalidTransitionError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception as exc:
        db.rollback()
        error = normalize_db_error(
            exc, operation="revert_preset", correlation_id=correlation_id,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)
    return ModerationResponse(preset=record_to_preset(record))


@router.get(
    "/api/v1/moderation/{preset_id}/history",
    response_model=ModerationHistoryResponse,
)
def moderation_history(
    preset_id: str,
    _auth: AuthContext = Depends(require_moderator),
    db: Session = Depends(get_db),
) -> ModerationHistoryResponse:
    try:
        get_preset_record(db, preset_id)
    except PresetNotFoundError:
        raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}")

    entries = [
        ModerationLogEntry(
            id=e.id,
            preset_id=e.preset_id,
            moderator_discord_id=e.moderator_discord_id,
            action=e.action,
            reason=e.reason,
            created_at=e.created_at.replace(tzinfo=UTC),
        )
        for e in get_moderation_history(db, preset_id)
    ]
    return ModerationHistoryResponse(entries=entries)
