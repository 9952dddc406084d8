"""Moderator ban management."""

import uuid
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from backend.app.api.deps import require_auth, require_moderator
from backend.app.core.errors import normalize_db_error
from backend.app.db.session import get_db
from backend.app.models.auth import AuthContext
from backend.app.models.ban_record import BanRecord
from backend.app.models.bans import (
    BanCheckResponse,
    BanEntry,
    BanListResponse,
    BanRequest,
    BanResponse,
    UnbanRequest,
)
from backend.app.services.ban_registry import (
    AlreadyBannedError,
    NotBannedError,
    ban_user,
    is_banned,
    list_active_bans,
    unban_user,
)

router = APIRouter()


def _aware(value: datetime | None) -> datetime | None:
    return value.replace(tzinfo=UTC) if value is not None else None


def _to_entry(ban: BanRecord) -> BanEntry:
    return BanEntry(
        id=ban.id,
        discord_id=ban.discord_id,
        xivauth_id=ban.xivauth_id,
        username=ban.username,
        moderator_discord_id=ban.moderator_discord_id,
        reason=ban.reason,
        banned_at=_aware(ban.banned_at),
        unbanned_at=_aware(ban.unbanned_at),
        unban_moderator_discord_id=ban.unban_moderator_discord_id,
    )


@router.get("/api/v1/moderation/bans", response_model=BanListResponse)
def list_bans(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    _auth: AuthContext = Depends(require_moderator),
    db: Session = Depends(get_db),
) -> BanListResponse:
    rows, total = list_active_bans(db, page=page, limit=limit)
    return BanListResponse(
        bans=[_to_entry(b) for b in rows],
        total=total,
        page=page,
        limit=limit,
        has_more=page * limit < total,
    )


@router.post("/api/v1/moderation/bans", response_model=BanResponse, status_code=201)
def create_ban(
    body: BanRequest,
    auth: AuthContext = Depends(require_moderator),
    db: Session = Depends(get_db),
) -> BanResponse:
    """Ban a user and hide their visible presets."""
    correlation_id = str(uuid.uuid4())
    try:
        ban, hidden = ban_user(
            db,
            body,
            username=body.username,
            moderator_id=auth.user_id,
            reason=body.reason,
        )
        db.commit()
    except AlreadyBannedError as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception as exc:
        db.rollback()
        error = normalize_db_error(
            exc, operation="ban_user", correlation_id=correlation_id,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)
    return BanResponse(ban=_to_entry(ban), presets_affected=hidden)


@router.post("/api/v1/moderation/bans/unban", response_model=BanResponse)
def lift_ban(
    body: UnbanRequest,
    auth: AuthContext = Depends(require_moderator),
    db: Session = Depends(get_db),
) -> BanResponse:
    """Lift a ban and restore the presets it hid."""
    correlation_id = str(uuid.uuid4())
    try:
        ban, restored = unban_user(db, body, moderator_id=auth.user_id)
        db.commit()
    except NotBannedError as exc:
        db.rollback()
        raise HTTPException(status_code=404, detail=str(exc))
    except Exception as exc:
        db.rollback()
        error = normalize_db_error(
            exc, operation="unban_user", correlation_id=correlation_id,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)
    return BanResponse(ban=_to_entry(ban), presets_affected=restored)


@router.get(
    "/api/v1/moderation/bans/check/{discord_id}", response_model=BanCheckResponse,
)
def check_ban(
    discord_id: str,
    _auth: AuthContext = Depends(require_auth),
    db: Session = Depends(get_db),
) -> BanCheckResponse:
    """Lets the bot short-circuit banned users before calling other endpoints."""
    return BanCheckResponse(is_banned=is_banned(db, discord_id=discord_id))
