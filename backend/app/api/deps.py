"""Request dependencies: caller identity, privilege checks, shared services.

The Discord bot authenticates with ``Authorization: Bearer <BOT_API_SECRET>``
and forwards the acting user in ``X-User-Discord-ID`` and
``X-User-Discord-Name``. Requests without a valid bearer token are
anonymous; they can browse approved presets and nothing else.
"""

import hmac
import logging

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from backend.app.core.settings import settings
from backend.app.db.session import get_db
from backend.app.models.auth import AuthContext
from backend.app.services.ban_registry import is_banned
from backend.app.services.moderation_pipeline import ModerationPipeline

logger = logging.getLogger(__name__)


def get_auth_context(
    authorization: str | None = Header(default=None),
    user_id: str | None = Header(default=None, alias="X-User-Discord-ID"),
    user_name: str | None = Header(default=None, alias="X-User-Discord-Name"),
) -> AuthContext:
    """Resolve the caller; never rejects, see the ``require_*`` helpers."""
    secret = settings.bot_api_secret
    if not secret or not authorization or not authorization.startswith("Bearer "):
        return AuthContext()

    token = authorization[len("Bearer "):]
    if not hmac.compare_digest(token.encode(), secret.encode()):
        logger.warning("auth_rejected: reason=bad_token")
        return AuthContext()

    user_id = (user_id or "").strip() or None
    return AuthContext(
        authenticated=True,
        is_moderator=user_id is not None and user_id in settings.moderator_id_set,
        user_id=user_id,
        user_name=(user_name or "").strip() or None,
    )


def require_auth(auth: AuthContext = Depends(get_auth_context)) -> AuthContext:
    if not auth.authenticated:
        raise HTTPException(status_code=401, detail="Valid authentication required")
    return auth


def require_user(auth: AuthContext = Depends(require_auth)) -> AuthContext:
    if auth.user_id is None:
        raise HTTPException(
            status_code=400, detail="X-User-Discord-ID header required",
        )
    return auth


def require_moderator(auth: AuthContext = Depends(require_user)) -> AuthContext:
    if not auth.is_moderator:
        raise HTTPException(status_code=403, detail="Moderator privileges required")
    return auth


def require_not_banned(
    auth: AuthContext = Depends(require_user),
    db: Session = Depends(get_db),
) -> AuthContext:
    """Reject banned users before submit, vote and edit reach the core."""
    if is_banned(db, discord_id=auth.user_id):
        logger.info("banned_user_rejected: user_id=%s", auth.user_id)
        raise HTTPException(status_code=403, detail="You are banned from submitting or voting")
    return auth


def get_moderation_pipeline(request: Request) -> ModerationPipeline:
    """The pipeline built once at startup and kept on ``app.state``."""
    return request.app.state.moderation_pipeline
