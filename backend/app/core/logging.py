"""Structured logging baseline and event taxonomy.

Event taxonomy (minimum set)::

    app_start                application process starting
    config_loaded            settings resolved successfully
    db_initialized           engine created, DB path resolved
    db_migration_started     alembic upgrade beginning
    db_migration_succeeded   alembic upgrade completed
    db_migration_failed      alembic upgrade error (with traceback)
    db_write_failed          repository write error
    db_read_failed           repository read error
    preset_submitted         new preset persisted
    preset_duplicate         submission collapsed onto an existing preset
    preset_status_changed    lifecycle transition applied
    preset_edited            author edit applied
    preset_reverted          moderator restored a pre-edit snapshot
    vote_added               vote row inserted, count incremented
    vote_removed             vote row deleted, count decremented
    rate_limit_exceeded      daily submission quota exhausted
    moderation_flagged       local filter or classifier flagged content
    classifier_unavailable   external classifier gave no verdict
    user_banned              ban created, presets hidden
    user_unbanned            ban closed, presets restored
    notification_failed      moderator alert could not be delivered

Rules:
    - Never log API keys, bot tokens, or webhook URLs.
    - Log preset IDs and content *lengths*, not raw submitted text.

Usage::

    from backend.app.core.logging import log_event
    log_event(logger, "info", "vote_added",
              preset_id=preset_id, new_vote_count=3)
"""

import logging
import sys

# Canonical event names for grep-ability and observability.
EVENT_APP_START = "app_start"
EVENT_CONFIG_LOADED = "config_loaded"
EVENT_DB_INITIALIZED = "db_initialized"
EVENT_DB_MIGRATION_STARTED = "db_migration_started"
EVENT_DB_MIGRATION_SUCCEEDED = "db_migration_succeeded"
EVENT_DB_MIGRATION_FAILED = "db_migration_failed"
EVENT_DB_WRITE_FAILED = "db_write_failed"
EVENT_DB_READ_FAILED = "db_read_failed"
EVENT_PRESET_SUBMITTED = "preset_submitted"
EVENT_PRESET_DUPLICATE = "preset_duplicate"
EVENT_PRESET_STATUS_CHANGED = "preset_status_changed"
EVENT_PRESET_EDITED = "preset_edited"
EVENT_PRESET_REVERTED = "preset_reverted"
EVENT_VOTE_ADDED = "vote_added"
EVENT_VOTE_REMOVED = "vote_removed"
EVENT_RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
EVENT_MODERATION_FLAGGED = "moderation_flagged"
EVENT_CLASSIFIER_UNAVAILABLE = "classifier_unavailable"
EVENT_USER_BANNED = "user_banned"
EVENT_USER_UNBANNED = "user_unbanned"
EVENT_NOTIFICATION_FAILED = "notification_failed"


_HANDLER_ATTR = "_preset_palettes"


def setup_logging(level: int = logging.INFO) -> None:
    """Configure root logger with a simple structured format.

    Safe to call multiple times; only adds the handler once and
    restores it if Alembic's ``fileConfig()`` removes it.
    """
    root = logging.getLogger()
    root.setLevel(level)

    # Check if our handler is already attached
    for h in root.handlers:
        if getattr(h, _HANDLER_ATTR, False):
            return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    setattr(handler, _HANDLER_ATTR, True)
    root.addHandler(handler)


def log_event(
    logger: logging.Logger,
    level: str,
    event_name: str,
    **kwargs: object,
) -> None:
    """Emit a structured log line with consistent ``event_name: key=value`` format.

    Parameters
    ----------
    logger:
        The logger instance (provides the component via ``logger.name``).
    level:
        Log level name: ``"info"``, ``"warning"``, ``"error"``, or ``"exception"``.
    event_name:
        Canonical event name (e.g. ``"vote_added"``).
    **kwargs:
        Arbitrary key-value pairs appended as ``key=value``.
    """
    parts = " ".join(f"{k}={v}" for k, v in kwargs.items())
    message = f"{event_name}: {parts}" if parts else event_name
    log_fn = getattr(logger, level, logger.info)
    log_fn(message)
