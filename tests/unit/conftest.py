"""Pytest configuration and fixtures for unit tests."""

from collections.abc import AsyncIterator
from pathlib import Path

import pytest

from src.core import db_client
from src.core.config import settings
from src.domain.notification import Channel
from src.services import dispatch_service
from tests.unit.mocks import FakeSender


@pytest.fixture(autouse=True)
def simulated_mode(monkeypatch: pytest.MonkeyPatch) -> None:
    """Never reach a real provider from unit tests."""
    monkeypatch.setattr(settings, "notification_mode", "simulated")


@pytest.fixture
async def db(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> AsyncIterator[Path]:
    """Fresh SQLite database file with the full schema."""
    db_path = tmp_path / "test.db"
    monkeypatch.setattr(settings, "sqlite_db_path", str(db_path))
    await db_client.init_db()
    yield db_path
    await db_client.close_connection()


@pytest.fixture
def fake_senders(monkeypatch: pytest.MonkeyPatch) -> dict[Channel, FakeSender]:
    """Replace the real senders with recording fakes and enable live delivery."""
    fakes = {channel: FakeSender(channel) for channel in Channel}
    monkeypatch.setattr(dispatch_service, "senders", fakes)
    monkeypatch.setattr(settings, "notification_mode", "live")
    return fakes
