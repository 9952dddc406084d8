"""Tests for preset persistence, the status lifecycle and listing queries."""

import json
import logging
from datetime import datetime, timedelta

import pytest
from backend.app.db.base import Base
from backend.app.models.moderation import ModerationAction
from backend.app.models.preset_record import PresetRecord
from backend.app.models.presets import (
    PresetEdit,
    PresetFilters,
    PresetStatus,
    PresetSubmission,
)
from backend.app.services.preset_repository import (
    ALLOWED_TRANSITIONS,
    InvalidTransitionError,
    PresetNotFoundError,
    apply_edit,
    count_presets_by_category,
    create_preset,
    get_featured_presets,
    get_moderation_history,
    get_pending_presets,
    get_preset,
    hide_for_ban,
    list_presets,
    list_presets_by_author,
    record_moderation_action,
    record_to_preset,
    revert_preset,
    transition_status,
)
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker


@pytest.fixture()
def db() -> Session:  # type: ignore[misc]
    """Yield an in-memory SQLite session with the schema created."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    session = sessionmaker(bind=engine, expire_on_commit=False)()
    try:
        yield session
    finally:
        session.close()


AUTHOR = "123456789012345678"
MOD = "999999999999999999"
_NOW = datetime(2026, 3, 1, 12, 0, 0)


def _submission(**overrides) -> PresetSubmission:
    data = {
        "name": "Sunset Glow",
        "description": "Warm oranges for evening glamours",
        "category_id": "aesthetics",
        "dyes": [9, 5, 3],
        "tags": ["warm", "evening"],
    }
    data.update(overrides)
    return PresetSubmission(**data)


def _create(
    db: Session,
    *,
    status: str = "approved",
    created_at: datetime = _NOW,
    **overrides,
) -> PresetRecord:
    return create_preset(
        db,
        _submission(**overrides),
        author_id=AUTHOR,
        author_name="author",
        status=status,
        now=created_at,
    )


# ---------------------------------------------------------------------------
# 1. Creation and conversion
# ---------------------------------------------------------------------------


class TestCreatePreset:
    def test_persists_fields(self, db: Session) -> None:
        record = _create(db)
        assert len(record.id) == 36
        assert record.vote_count == 0
        assert record.status == "approved"
        assert record.is_curated is False
        assert record.dye_signature == "[3,5,9]"
        assert json.loads(record.dyes) == [9, 5, 3]
        assert record.created_at == record.updated_at == _NOW

    def test_logs_without_content(
        self, db: Session, caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.INFO):
            record = _create(db)
        assert f"preset_submitted: preset_id={record.id}" in caplog.text
        assert "Sunset Glow" not in caplog.text

    def test_record_to_preset(self, db: Session) -> None:
        preset = record_to_preset(_create(db))
        assert preset.dyes == [9, 5, 3]
        assert preset.tags == ["warm", "evening"]
        assert preset.status == PresetStatus.approved
        assert preset.created_at.utcoffset() == timedelta(0)
        assert preset.previous_values is None

    def test_get_preset_missing(self, db: Session) -> None:
        with pytest.raises(PresetNotFoundError):
            get_preset(db, "missing")


# ---------------------------------------------------------------------------
# 2. Status lifecycle
# ---------------------------------------------------------------------------


class TestTransitions:
    @pytest.mark.parametrize(
        "start,target",
        [
            (s, t)
            for s, targets in ALLOWED_TRANSITIONS.items()
            for t in sorted(targets)
        ],
    )
    def test_allowed(self, db: Session, start: str, target: str) -> None:
        record = _create(db, status=start)
        later = _NOW + timedelta(hours=1)
        updated = transition_status(db, record.id, target, now=later)
        assert updated.status == target
        assert updated.updated_at == later

    @pytest.mark.parametrize(
        "start,target",
        [
            ("rejected", "approved"),
            ("rejected", "pending"),
            ("pending", "hidden"),
            ("approved", "pending"),
            ("approved", "rejected"),
            ("hidden", "pending"),
            ("flagged", "hidden"),
        ],
    )
    def test_disallowed(self, db: Session, start: str, target: str) -> None:
        record = _create(db, status=start)
        with pytest.raises(InvalidTransitionError):
            transition_status(db, record.id, target)
        assert record.status == start

    def test_missing_preset(self, db: Session) -> None:
        with pytest.raises(PresetNotFoundError):
            transition_status(db, "missing", "approved")

    def test_leaving_flagged_clears_snapshot(self, db: Session) -> None:
        record = _create(db)
        apply_edit(db, record.id, PresetEdit(name="Renamed"), flagged=True)
        assert record.previous_values is not None
        transition_status(db, record.id, "approved")
        assert record.previous_values is None

    def test_leaving_hidden_clears_ban_tracking(self, db: Session) -> None:
        record = _create(db, status="hidden")
        record.hidden_from_status = "approved"
        record.hidden_by_ban_id = "ban-1"
        transition_status(db, record.id, "approved")
        assert record.hidden_from_status is None
        assert record.hidden_by_ban_id is None

    def test_leaving_hidden_clears_stale_snapshot(self, db: Session) -> None:
        record = _create(db)
        apply_edit(db, record.id, PresetEdit(name="Renamed"), flagged=True)
        hide_for_ban(db, AUTHOR, "ban-1")
        assert record.status == "hidden"
        transition_status(db, record.id, "approved")
        assert record.previous_values is None
        assert record.name == "Renamed"
        record.status = "flagged"
        db.flush()
        with pytest.raises(InvalidTransitionError):
            revert_preset(db, record.id)

    def test_status_change_logged(
        self, db: Session, caplog: pytest.LogCaptureFixture,
    ) -> None:
        record = _create(db, status="pending")
        with caplog.at_level(logging.INFO):
            transition_status(db, record.id, "approved")
        assert "from_status=pending to_status=approved" in caplog.text


# ---------------------------------------------------------------------------
# 3. Edits and revert
# ---------------------------------------------------------------------------


class TestEditAndRevert:
    def test_clean_edit_keeps_status(self, db: Session) -> None:
        record = _create(db)
        apply_edit(
            db, record.id,
            PresetEdit(description="Cooler tones for the morning"),
            flagged=False,
        )
        assert record.status == "approved"
        assert record.description == "Cooler tones for the morning"
        assert record.name == "Sunset Glow"
        assert record.previous_values is None

    def test_dye_edit_updates_signature(self, db: Session) -> None:
        record = _create(db)
        apply_edit(db, record.id, PresetEdit(dyes=[7, 1]), flagged=False)
        assert json.loads(record.dyes) == [7, 1]
        assert record.dye_signature == "[1,7]"

    def test_flagged_edit_of_approved_snapshots(self, db: Session) -> None:
        record = _create(db)
        apply_edit(
            db, record.id,
            PresetEdit(name="Renamed", dyes=[1, 2]),
            flagged=True,
        )
        assert record.status == "flagged"
        preset = record_to_preset(record)
        assert preset.previous_values is not None
        assert preset.previous_values.name == "Sunset Glow"
        assert preset.previous_values.dyes == [9, 5, 3]
        assert preset.previous_values.tags == ["warm", "evening"]
        assert preset.name == "Renamed"

    def test_second_flagged_edit_keeps_first_snapshot(self, db: Session) -> None:
        record = _create(db)
        apply_edit(db, record.id, PresetEdit(name="Second"), flagged=True)
        apply_edit(db, record.id, PresetEdit(name="Third"), flagged=True)
        snapshot = record_to_preset(record).previous_values
        assert snapshot is not None
        assert snapshot.name == "Sunset Glow"
        assert record.name == "Third"

    def test_flagged_edit_of_pending_stays_pending(self, db: Session) -> None:
        record = _create(db, status="pending")
        apply_edit(db, record.id, PresetEdit(name="Renamed"), flagged=True)
        assert record.status == "pending"
        assert record.previous_values is None

    def test_revert_restores_snapshot(self, db: Session) -> None:
        record = _create(db)
        apply_edit(
            db, record.id,
            PresetEdit(name="Renamed", dyes=[1, 2], tags=["new"]),
            flagged=True,
        )
        reverted = revert_preset(db, record.id)
        assert reverted.status == "approved"
        assert reverted.name == "Sunset Glow"
        assert json.loads(reverted.dyes) == [9, 5, 3]
        assert json.loads(reverted.tags) == ["warm", "evening"]
        assert reverted.dye_signature == "[3,5,9]"
        assert reverted.previous_values is None

    def test_revert_without_snapshot(self, db: Session) -> None:
        record = _create(db, status="flagged")
        with pytest.raises(InvalidTransitionError):
            revert_preset(db, record.id)

    def test_revert_requires_flagged(self, db: Session) -> None:
        record = _create(db)
        apply_edit(db, record.id, PresetEdit(name="Renamed"), flagged=True)
        record.status = "rejected"
        db.flush()
        with pytest.raises(InvalidTransitionError):
            revert_preset(db, record.id)

    def test_revert_missing(self, db: Session) -> None:
        with pytest.raises(PresetNotFoundError):
            revert_preset(db, "missing")


# ---------------------------------------------------------------------------
# 4. Listing
# ---------------------------------------------------------------------------


class TestListing:
    def _seed(self, db: Session) -> dict[str, PresetRecord]:
        rows = {
            "old_popular": _create(
                db, name="Alpha", created_at=_NOW - timedelta(days=3),
                category_id="jobs", dyes=[1, 2],
            ),
            "new_popular": _create(
                db, name="Bravo", created_at=_NOW - timedelta(days=1),
                dyes=[3, 4], tags=["crimson"],
            ),
            "newest": _create(db, name="Charlie", created_at=_NOW, dyes=[5, 6]),
            "pending": _create(db, name="Delta", status="pending", dyes=[7, 8]),
        }
        rows["old_popular"].vote_count = 5
        rows["new_popular"].vote_count = 5
        rows["newest"].vote_count = 1
        db.flush()
        return rows

    def test_default_is_approved_by_popularity(self, db: Session) -> None:
        rows = self._seed(db)
        result, total = list_presets(db, PresetFilters())
        assert total == 3
        assert [r.id for r in result] == [
            rows["new_popular"].id,
            rows["old_popular"].id,
            rows["newest"].id,
        ]

    def test_recent_sort(self, db: Session) -> None:
        self._seed(db)
        result, _ = list_presets(db, PresetFilters(sort="recent"))
        assert [r.name for r in result] == ["Charlie", "Bravo", "Alpha"]

    def test_name_sort(self, db: Session) -> None:
        self._seed(db)
        result, _ = list_presets(db, PresetFilters(sort="name"))
        assert [r.name for r in result] == ["Alpha", "Bravo", "Charlie"]

    def test_category_filter(self, db: Session) -> None:
        self._seed(db)
        result, total = list_presets(db, PresetFilters(category="jobs"))
        assert total == 1
        assert result[0].name == "Alpha"

    def test_status_filter(self, db: Session) -> None:
        self._seed(db)
        result, total = list_presets(db, PresetFilters(status="pending"))
        assert total == 1
        assert result[0].name == "Delta"

    def test_search_is_case_insensitive_over_tags(self, db: Session) -> None:
        self._seed(db)
        result, total = list_presets(db, PresetFilters(search="CRIMSON"))
        assert total == 1
        assert result[0].name == "Bravo"

    def test_search_matches_name(self, db: Session) -> None:
        self._seed(db)
        result, _ = list_presets(db, PresetFilters(search="arli"))
        assert [r.name for r in result] == ["Charlie"]

    @pytest.mark.parametrize("term", ["%", "_", ",", "[", "\""])
    def test_search_metacharacters_match_literally(
        self, db: Session, term: str,
    ) -> None:
        self._seed(db)
        result, total = list_presets(db, PresetFilters(search=term))
        assert total == 0
        assert result == []

    def test_search_underscore_in_name(self, db: Session) -> None:
        self._seed(db)
        _create(db, name="Echo_Two", dyes=[11, 12])
        result, _ = list_presets(db, PresetFilters(search="o_T"))
        assert [r.name for r in result] == ["Echo_Two"]

    def test_search_matches_any_tag(self, db: Session) -> None:
        self._seed(db)
        _create(db, name="Foxtrot", dyes=[13, 14], tags=["teal", "frost"])
        result, _ = list_presets(db, PresetFilters(search="FRO"))
        assert [r.name for r in result] == ["Foxtrot"]

    def test_pagination_keeps_total(self, db: Session) -> None:
        self._seed(db)
        page1, total = list_presets(db, PresetFilters(limit=2, page=1))
        page2, _ = list_presets(db, PresetFilters(limit=2, page=2))
        assert total == 3
        assert len(page1) == 2
        assert len(page2) == 1
        assert {r.id for r in page1}.isdisjoint({r.id for r in page2})

    def test_curated_filter(self, db: Session) -> None:
        rows = self._seed(db)
        rows["newest"].is_curated = True
        db.flush()
        result, total = list_presets(db, PresetFilters(is_curated=True))
        assert total == 1
        assert result[0].name == "Charlie"

    def test_featured_top_approved(self, db: Session) -> None:
        self._seed(db)
        featured = get_featured_presets(db, limit=2)
        assert [r.name for r in featured] == ["Bravo", "Alpha"]

    def test_pending_queue_oldest_first(self, db: Session) -> None:
        rows = self._seed(db)
        flagged = _create(
            db, name="Echo", status="flagged",
            created_at=_NOW - timedelta(days=5), dyes=[9, 10],
        )
        queue = get_pending_presets(db)
        assert [r.id for r in queue] == [flagged.id, rows["pending"].id]

    def test_by_author_any_status(self, db: Session) -> None:
        self._seed(db)
        mine = list_presets_by_author(db, AUTHOR)
        assert len(mine) == 4
        assert list_presets_by_author(db, "000000000000000000") == []

    def test_category_counts_approved_only(self, db: Session) -> None:
        self._seed(db)
        assert count_presets_by_category(db) == {"jobs": 1, "aesthetics": 2}


# ---------------------------------------------------------------------------
# 5. Moderation log
# ---------------------------------------------------------------------------


class TestModerationLog:
    def test_history_in_order(self, db: Session) -> None:
        record = _create(db, status="pending")
        record_moderation_action(
            db, record.id, moderator_id=MOD,
            action=ModerationAction.flag, reason="Needs a look",
            now=_NOW,
        )
        record_moderation_action(
            db, record.id, moderator_id=MOD,
            action=ModerationAction.approve,
            now=_NOW + timedelta(minutes=5),
        )
        history = get_moderation_history(db, record.id)
        assert [e.action for e in history] == ["flag", "approve"]
        assert history[0].reason == "Needs a look"
        assert history[1].reason is None
        assert history[0].moderator_discord_id == MOD

    def test_history_empty(self, db: Session) -> None:
        record = _create(db)
        assert get_moderation_history(db, record.id) == []
