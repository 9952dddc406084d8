"""Vote, unvote and vote-check endpoints."""

import uuid

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from backend.app.api.deps import require_not_banned, require_user
from backend.app.core.errors import normalize_db_error
from backend.app.db.session import get_db
from backend.app.models.auth import AuthContext
from backend.app.models.votes import VoteCheckResponse, VoteResult
from backend.app.services.preset_repository import PresetNotFoundError
from backend.app.services.vote_ledger import cast_vote, has_voted, remove_vote

router = APIRouter()


@router.post(
    "/api/v1/votes/{preset_id}",
    response_model=VoteResult,
    responses={409: {"model": VoteResult, "description": "Already voted"}},
)
def vote(
    preset_id: str,
    auth: AuthContext = Depends(require_not_banned),
    db: Session = Depends(get_db),
):
    """Vote for a preset. A repeat vote answers 409 with the unchanged count."""
    correlation_id = str(uuid.uuid4())
    try:
        result = cast_vote(db, preset_id, auth.user_id)
        db.commit()
    except PresetNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}")
    except Exception as exc:
        db.rollback()
        error = normalize_db_error(
            exc, operation="cast_vote", correlation_id=correlation_id,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)

    if result.already_voted:
        return JSONResponse(status_code=409, content=result.model_dump())
    return result


@router.delete("/api/v1/votes/{preset_id}", response_model=VoteResult)
def unvote(
    preset_id: str,
    auth: AuthContext = Depends(require_not_banned),
    db: Session = Depends(get_db),
) -> VoteResult:
    """Withdraw a vote. Having no vote to withdraw is not an error."""
    correlation_id = str(uuid.uuid4())
    try:
        result = remove_vote(db, preset_id, auth.user_id)
        db.commit()
    except PresetNotFoundError:
        db.rollback()
        raise HTTPException(status_code=404, detail=f"Preset not found: {preset_id}")
    except Exception as exc:
        db.rollback()
        error = normalize_db_error(
            exc, operation="remove_vote", correlation_id=correlation_id,
        )
        raise HTTPException(status_code=error.http_status, detail=error.user_message)
    return result


@router.get("/api/v1/votes/{preset_id}/check", response_model=VoteCheckResponse)
def check_vote(
    preset_id: str,
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
) -> VoteCheckResponse:
    return VoteCheckResponse(has_voted=has_voted(db, preset_id, auth.user_id))
