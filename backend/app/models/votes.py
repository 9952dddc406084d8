"""Pydantic models for vote results and rate-limit status."""

from datetime import datetime

from pydantic import BaseModel


class VoteResult(BaseModel):
    """Outcome of a vote or unvote.

    ``already_voted`` reports the state found *before* the call: True on a
    repeated vote, False on an unvote with nothing to remove.
    """

    success: bool
    new_vote_count: int
    already_voted: bool = False


class VoteCheckResponse(BaseModel):
    has_voted: bool


class RateLimitResult(BaseModel):
    """Daily submission quota for one user."""

    allowed: bool
    remaining: int
    reset_at: datetime
