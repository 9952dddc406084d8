"""Preset browsing, submission and author edits."""

import logging
import uuid
from typing import Annotated

from fastapi import (
    APIRouter,
    BackgroundTasks,
    Depends,
    HTTPException,
    Query,
    Response,
)
from sqlalchemy.orm import Session

from backend.app.api.deps import (
    get_auth_context,
    get_moderation_pipeline,
    require_not_banned,
    require_user,
)
from backend.app.core.errors import normalize_db_error
from backend.app.db.session import get_db
from backend.app.models.auth import AuthContext
from backend.app.models.presets import (
    CommunityPreset,
    FeaturedPresetsResponse,
    PresetEdit,
    PresetEditResponse,
    PresetFilters,
    PresetListResponse,
    PresetStatus,
    PresetSubmission,
    PresetSubmitResponse,
)
from backend.app.models.votes import RateLimitResult
from backend.app.services.moderation_pipeline import ModerationPipeline
from backend.app.services.notifier import ModerationNotifier, get_notifier
from backend.app.services.preset_repository import (
    InvalidTransitionError,
    PresetNotFoundError,
    get_featured_presets,
    get_preset_record,
    list_presets,
    list_presets_by_author,
    record_to_preset,
)
from backend.app.services.rate_limiter import (
    RateLimitExceededError,
    get_remaining_submissions,
)
from backend.app.services.submission_service import (
    DuplicatePresetError,
    NotPresetAuthorError,
    edit_preset,
    submit_preset,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Statuses only moderators and the author may look at
_RESTRICTED_STATUSES = ("hidden", "rejected")


def _rate_limited(exc: RateLimitExceededError) -> HTTPException:
    reset_at = exc.result.reset_at.isoformat()
    return HTTPException(
        status_code=429,
        detail={
            "message": "Daily submission limit reached",
            "remaining": 0,
            "reset_at": reset_at,
        },
        headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": reset_at},
    )


@router.get("/api/v1/presets", response_model=PresetListResponse)
def list_community_presets(
    filters: Annotated[PresetFilters, Query()],
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> PresetListResponse:
    """List presets. Only moderators may browse statuses other than approved."""
    if filters.status != PresetStatus.approved and not auth.is_moderator:
        raise HTTPException(
            status_code=403,
            detail="Moderator privileges required to list non-approved presets",
        )
    rows, total = list_presets(db, filters)
    return PresetListResponse(
        presets=[record_to_preset(r) for r in rows],
        total=total,
        page=filters.page,
        limit=filters.limit,
        has_more=filters.page * filters.limit < total,
    )


@router.get("/api/v1/presets/featured", response_model=FeaturedPresetsResponse)
def featured_presets(db: Session = Depends(get_db)) -> FeaturedPresetsResponse:
    return FeaturedPresetsResponse(
        presets=[record_to_preset(r) for r in get_featured_presets(db)],
    )


@router.get("/api/v1/presets/mine", response_model=list[CommunityPreset])
def my_presets(
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
) -> list[CommunityPreset]:
    """Every preset the caller submitted, whatever its status."""
    return [record_to_preset(r) for r in list_presets_by_author(db, auth.user_id)]


@router.get("/api/v1/presets/rate-limit", response_model=RateLimitResult)
def my_rate_limit(
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
) -> RateLimitResult:
    return get_remaining_submissions(db, auth.user_id)


@router.get("/api/v1/presets/{preset_id}", response_model=CommunityPreset)
def get_community_preset(
    preset_id: str,
    auth: AuthContext = Depends(get_auth_context),
    db: Session = Depends(get_db),
) -> CommunityPreset:
    try:
        record = get_preset_record(db, preset_id)
    except PresetNotFoundError:
        raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}")

    is_author = auth.user_id is not None and auth.user_id == record.author_discord_id
    if (
        record.status in _RESTRICTED_STATUSES
        and not auth.is_moderator
        and not is_author
    ):
        raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}")
    return record_to_preset(record)


@router.post(
    "/api/v1/presets",
    response_model=PresetSubmitResponse,
    status_code=201,
)
def submit_community_preset(
    body: PresetSubmission,
    response: Response,
    background_tasks: BackgroundTasks,
    auth: AuthContext = Depends(require_not_banned),
    pipeline: ModerationPipeline = Depends(get_moderation_pipeline),
    notifier: ModerationNotifier = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> PresetSubmitResponse:
    """Submit a palette.

    Returns 201 with the new preset, or 200 with the existing preset when the
    dye set is a duplicate (the caller's vote is added to it instead).
    """
    correlation_id = str(uuid.uuid4())
    try:
        outcome = submit_preset(db, body, auth, pipeline)
        db.commit()
    except RateLimitExceededError as exc:
        db.rollback()
        raise _rate_limited(exc)
    except Exception as exc:
        db.rollback()
        error = normalize_db_error(
            exc, operation="submit_preset", correlation_id=correlation_id,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)

    if outcome.duplicate is not None:
        response.status_code = 200
        return PresetSubmitResponse(
            duplicate=record_to_preset(outcome.duplicate),
            vote_added=outcome.vote_added,
        )

    if outcome.alert is not None:
        background_tasks.add_task(notifier.notify, outcome.alert)

    preset = record_to_preset(outcome.preset)
    return PresetSubmitResponse(preset=preset, moderation_status=preset.status)


@router.patch("/api/v1/presets/{preset_id}", response_model=PresetEditResponse)
def edit_community_preset(
    preset_id: str,
    body: PresetEdit,
    background_tasks: BackgroundTasks,
    auth: AuthContext = Depends(require_not_banned),
    pipeline: ModerationPipeline = Depends(get_moderation_pipeline),
    notifier: ModerationNotifier = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> PresetEditResponse:
    """Edit one of the caller's own presets.

    A flagged edit of an approved preset moves it back to moderation and
    keeps the previous values so a moderator can revert.
    """
    correlation_id = str(uuid.uuid4())
    try:
        outcome = edit_preset(db, preset_id, body, auth, pipeline)
        db.commit()
    except PresetNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}")
    except NotPresetAuthorError as exc:
        db.rollback()
        raise HTTPException(status_code=403, detail=str(exc))
    except (InvalidTransitionError, DuplicatePresetError) as exc:
        db.rollback()
        raise HTTPException(status_code=409, detail=str(exc))
    except Exception as exc:
        db.rollback()
        error = normalize_db_error(
            exc, operation="edit_preset", correlation_id=correlation_id,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)

    if outcome.alert is not None:
        background_tasks.add_task(notifier.notify, outcome.alert)

    preset = record_to_preset(outcome.preset)
    return PresetEditResponse(
        preset=preset,
        moderation_status=preset.status,
        flagged=outcome.flagged,
    )
