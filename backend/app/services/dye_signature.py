"""Dye signatures and exact-set duplicate lookup."""

from __future__ import annotations

import json
from collections.abc import Iterable

from sqlalchemy.orm import Session

from backend.app.models.preset_record import PresetRecord

# Statuses a new submission can collapse onto. Rejected, flagged and hidden
# presets do not block resubmission.
DUPLICATE_TARGET_STATUSES = ("approved", "pending")


def signature(dyes: Iterable[int]) -> str:
    """Return the canonical, order-independent signature of *dyes*.

    The ids are sorted ascending and serialized as compact JSON, e.g.
    ``[9, 5, 3]`` → ``"[3,5,9]"``.
    """
    return json.dumps(sorted(dyes), separators=(",", ":"))


def find_duplicate(
    db: Session,
    dyes: Iterable[int],
    *,
    exclude_id: str | None = None,
) -> PresetRecord | None:
    """Return the oldest approved/pending preset with the same dye set, if any.

    *exclude_id* skips one preset, so an edit does not match itself.
    """
    query = db.query(PresetRecord).filter(
        PresetRecord.dye_signature == signature(dyes),
        PresetRecord.status.in_(DUPLICATE_TARGET_STATUSES),
    )
    if exclude_id is not None:
        query = query.filter(PresetRecord.id != exclude_id)
    return query.order_by(PresetRecord.created_at.asc()).first()
