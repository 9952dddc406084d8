"""Tests for the Alembic migration workflow and its guardrails.

Each test migrates a throwaway SQLite file, never the configured database.
"""

from pathlib import Path
from unittest.mock import patch

import pytest
from backend.app.db.migrations import (
    MigrationError,
    check_schema_current,
    get_current_revision,
    get_head_revision,
    run_migrations,
)
from sqlalchemy import Engine, create_engine, inspect, text
from sqlalchemy.exc import IntegrityError


@pytest.fixture()
def temp_engine(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Engine:
    """Point the migration runner and Alembic env at a fresh database file."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'migrate.db'}",
        connect_args={"check_same_thread": False},
    )
    monkeypatch.setattr("backend.app.db.engine.engine", engine)
    monkeypatch.setattr("backend.app.db.migrations.engine", engine)
    yield engine
    engine.dispose()


# ---------------------------------------------------------------------------
# 1. Fresh database is migrated to head
# ---------------------------------------------------------------------------


class TestFreshMigration:
    def test_creates_all_tables(self, temp_engine: Engine) -> None:
        assert get_current_revision() is None
        run_migrations()
        tables = set(inspect(temp_engine).get_table_names())
        assert {"presets", "votes", "banned_users", "moderation_log"} <= tables
        assert get_current_revision() == get_head_revision()

    def test_preset_columns(self, temp_engine: Engine) -> None:
        run_migrations()
        columns = {c["name"] for c in inspect(temp_engine).get_columns("presets")}
        assert {
            "dye_signature",
            "previous_values",
            "hidden_from_status",
            "hidden_by_ban_id",
            "vote_count",
        } <= columns

    def test_preset_indexes(self, temp_engine: Engine) -> None:
        run_migrations()
        names = {i["name"] for i in inspect(temp_engine).get_indexes("presets")}
        assert "ix_presets_dye_signature" in names
        assert "ix_presets_status_vote" in names

    def test_one_active_ban_per_identifier(self, temp_engine: Engine) -> None:
        run_migrations()
        insert = text(
            "INSERT INTO banned_users (id, discord_id, username, "
            "moderator_discord_id, reason, banned_at, unbanned_at) "
            "VALUES (:id, :discord_id, 'u', 'm', 'reason text', :at, :unbanned)"
        )
        now = "2026-03-01 00:00:00.000000"
        with temp_engine.begin() as conn:
            conn.execute(insert, {"id": "b1", "discord_id": "1", "at": now, "unbanned": now})
            conn.execute(insert, {"id": "b2", "discord_id": "1", "at": now, "unbanned": None})
        with pytest.raises(IntegrityError):
            with temp_engine.begin() as conn:
                conn.execute(
                    insert, {"id": "b3", "discord_id": "1", "at": now, "unbanned": None},
                )

    def test_head_revision_is_not_none(self) -> None:
        head = get_head_revision()
        assert isinstance(head, str)
        assert len(head) > 0


# ---------------------------------------------------------------------------
# 2. Existing database at head is left alone
# ---------------------------------------------------------------------------


class TestExistingDb:
    def test_already_at_head_is_noop(self, temp_engine: Engine) -> None:
        run_migrations()
        with (
            patch("backend.app.db.migrations.command.upgrade") as upgrade,
            patch("backend.app.db.migrations.logger") as mock_logger,
        ):
            run_migrations()
        upgrade.assert_not_called()
        call_text = " ".join(str(c) for c in mock_logger.method_calls)
        assert "already at head" in call_text

    def test_startup_logs_current_and_head(self, temp_engine: Engine) -> None:
        with patch("backend.app.db.migrations.logger") as mock_logger:
            run_migrations()
        call_text = " ".join(str(c) for c in mock_logger.method_calls)
        assert "db_migration_started" in call_text
        assert "db_migration_succeeded" in call_text


# ---------------------------------------------------------------------------
# 3. Failures carry the revision and a hint
# ---------------------------------------------------------------------------


def _failing_upgrade(current: str, message: str):
    return (
        patch("backend.app.db.migrations.get_current_revision", return_value=current),
        patch(
            "backend.app.db.migrations.command.upgrade",
            side_effect=RuntimeError(message),
        ),
    )


class TestMigrationFailure:
    def test_error_names_revision_and_cause(self) -> None:
        rev_patch, upgrade_patch = _failing_upgrade("old_rev", "column already exists")
        with rev_patch, upgrade_patch:
            with pytest.raises(MigrationError) as exc_info:
                run_migrations()
        message = str(exc_info.value)
        assert "old_rev" in message
        assert "target=head" in message
        assert "column already exists" in message
        assert "alembic/versions/" in message

    def test_failure_logged_with_revision(self) -> None:
        rev_patch, upgrade_patch = _failing_upgrade("deadbeef", "fail")
        with (
            rev_patch,
            upgrade_patch,
            patch("backend.app.db.migrations.logger") as mock_logger,
            pytest.raises(MigrationError),
        ):
            run_migrations()
        call_text = " ".join(str(c) for c in mock_logger.method_calls)
        assert "db_migration_failed" in call_text
        assert "deadbeef" in call_text


# ---------------------------------------------------------------------------
# 4. Schema drift detection
# ---------------------------------------------------------------------------


class TestSchemaDrift:
    def test_no_drift_when_at_head(self, temp_engine: Engine) -> None:
        run_migrations()
        assert check_schema_current() is True

    def test_fresh_db_is_behind(self, temp_engine: Engine) -> None:
        assert check_schema_current() is False

    def test_drift_logged_as_warning(self) -> None:
        with (
            patch(
                "backend.app.db.migrations.get_current_revision",
                return_value="old_revision",
            ),
            patch("backend.app.db.migrations.logger") as mock_logger,
        ):
            assert check_schema_current() is False
        mock_logger.warning.assert_called_once()
        call_text = str(mock_logger.warning.call_args)
        assert "db_schema_drift" in call_text
        assert "alembic upgrade head" in call_text
