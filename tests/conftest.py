"""Shared fixtures for API tests: an isolated database and a bot caller."""

from collections.abc import Iterator

import pytest
from backend.app.api.deps import get_moderation_pipeline
from backend.app.core.settings import settings
from backend.app.db.base import Base
from backend.app.db.session import get_db
from backend.app.main import app
from backend.app.services.local_filter import build_local_filter
from backend.app.services.moderation_pipeline import ModerationPipeline
from backend.app.services.notifier import ModerationAlert, get_notifier
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

BOT_SECRET = "test-bot-secret"
MODERATOR_ID = "900000000000000001"
ALICE_ID = "100000000000000001"
BOB_ID = "100000000000000002"


class RecordingNotifier:
    """Stands in for the Discord notifier and keeps every alert."""

    def __init__(self) -> None:
        self.alerts: list[ModerationAlert] = []

    def notify(self, alert: ModerationAlert) -> None:
        self.alerts.append(alert)


def bot_headers(user_id: str | None = None, name: str | None = None) -> dict[str, str]:
    headers = {"Authorization": f"Bearer {BOT_SECRET}"}
    if user_id is not None:
        headers["X-User-Discord-ID"] = user_id
        headers["X-User-Discord-Name"] = name or f"user-{user_id[-4:]}"
    return headers


@pytest.fixture()
def session_factory() -> Iterator[sessionmaker]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.fixture()
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture()
def client(
    session_factory: sessionmaker,
    notifier: RecordingNotifier,
    monkeypatch: pytest.MonkeyPatch,
) -> Iterator[TestClient]:
    """TestClient wired to an in-memory database; lifespan is not run."""

    def _get_db() -> Iterator[Session]:
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    pipeline = ModerationPipeline(build_local_filter({"en": ("badword",)}))
    monkeypatch.setattr(settings, "bot_api_secret", BOT_SECRET)
    monkeypatch.setattr(settings, "moderator_ids", MODERATOR_ID)
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_moderation_pipeline] = lambda: pipeline
    app.dependency_overrides[get_notifier] = lambda: notifier
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
