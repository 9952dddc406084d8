"""Pydantic models for the ban registry."""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator, model_validator

BAN_REASON_MIN_LENGTH = 10
BAN_REASON_MAX_LENGTH = 500


class BanIdentity(BaseModel):
    """A subject identity across both identifier namespaces."""

    discord_id: str | None = Field(default=None, max_length=32)
    xivauth_id: str | None = Field(default=None, max_length=64)

    @field_validator("discord_id", "xivauth_id", mode="before")
    @classmethod
    def blank_to_none(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            v = v.strip()
            return v or None
        return v

    @model_validator(mode="after")
    def _require_identifier(self) -> "BanIdentity":
        if self.discord_id is None and self.xivauth_id is None:
            raise ValueError("At least one of discord_id or xivauth_id is required")
        return self


class BanRequest(BanIdentity):
    username: str = Field(..., min_length=1, max_length=100)
    reason: str = Field(
        ..., min_length=BAN_REASON_MIN_LENGTH, max_length=BAN_REASON_MAX_LENGTH,
    )

    @field_validator("username", "reason", mode="before")
    @classmethod
    def strip_text(cls, v: str | None) -> str | None:
        if isinstance(v, str):
            return v.strip()
        return v


class UnbanRequest(BanIdentity):
    pass


class BanEntry(BaseModel):
    id: str
    discord_id: str | None = None
    xivauth_id: str | None = None
    username: str
    moderator_discord_id: str
    reason: str
    banned_at: datetime
    unbanned_at: datetime | None = None
    unban_moderator_discord_id: str | None = None


class BanResponse(BaseModel):
    success: bool = True
    ban: BanEntry
    presets_affected: int


class BanListResponse(BaseModel):
    bans: list[BanEntry]
    total: int
    page: int
    limit: int
    has_more: bool


class BanCheckResponse(BaseModel):
    is_banned: bool
