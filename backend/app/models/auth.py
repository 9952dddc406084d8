"""Caller identity resolved by the authorization boundary."""

from pydantic import BaseModel


class AuthContext(BaseModel):
    """Already-validated caller context handed to core operations."""

    model_config = {"frozen": True}

    authenticated: bool = False
    is_moderator: bool = False
    user_id: str | None = None
    user_name: str | None = None
