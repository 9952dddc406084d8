"""Pydantic models for moderation verdicts and moderator actions."""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal

from pydantic import BaseModel, Field

from backend.app.models.presets import CommunityPreset


class ModerationPassed(BaseModel):
    """Content cleared every stage that ran.

    ``method`` is ``"local"`` when only the word filter ran (classifier
    unconfigured or unavailable) and ``"all"`` when the classifier also
    returned an opinion.
    """

    passed: Literal[True] = True
    method: Literal["local", "all"]
    scores: dict[str, float] | None = None


class LocalFlagged(BaseModel):
    """The local word filter matched a blocked term."""

    passed: Literal[False] = False
    method: Literal["local"] = "local"
    flagged_field: Literal["name", "description"]
    reason: str = "prohibited content"


class ExternalFlagged(BaseModel):
    """The external classifier scored an attribute at or above threshold."""

    passed: Literal[False] = False
    method: Literal["external"] = "external"
    flagged_field: Literal["content"] = "content"
    reason: str
    scores: dict[str, float]


ModerationResult = ModerationPassed | LocalFlagged | ExternalFlagged
"""Closed union returned by the moderation pipeline."""


class ModerationAction(StrEnum):
    approve = "approve"
    reject = "reject"
    flag = "flag"
    unflag = "unflag"
    revert = "revert"
    hide = "hide"
    restore = "restore"


class StatusChangeRequest(BaseModel):
    """Moderator decision on a preset."""

    status: Literal["approved", "rejected", "flagged"]
    reason: str | None = Field(default=None, max_length=500)


class ModerationLogEntry(BaseModel):
    id: int
    preset_id: str
    moderator_discord_id: str
    action: ModerationAction
    reason: str | None = None
    created_at: datetime


class ModerationResponse(BaseModel):
    success: bool = True
    preset: CommunityPreset


class ModerationHistoryResponse(BaseModel):
    entries: list[ModerationLogEntry]
