"""Pytest configuration and shared fixtures"""
from typing import Optional

import pytest
import pytest_asyncio

from opsscale.api.mailer import MailMessage
from opsscale.api.storage import InMemoryStorageBackend
from opsscale.config import Settings
from opsscale.config.settings import CONFIG_FILE_ENV, ENV_FIELDS
from opsscale.exceptions import NotificationError


class RecordingNotifier:
    """Notifier that keeps sent messages, or fails with a given error"""

    def __init__(self, error: Optional[Exception] = None):
        self.sent: list[MailMessage] = []
        self.error = error

    @property
    def available(self) -> bool:
        return True

    async def send(self, message: MailMessage) -> None:
        if self.error is not None:
            raise self.error
        self.sent.append(message)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove every environment variable the settings loader reads"""
    for name in (*ENV_FIELDS, CONFIG_FILE_ENV):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def settings() -> Settings:
    """Settings with every collaborator unconfigured"""
    return Settings(mail_from="Ops Scale <noreply@opsscale.tech>", mail_to="team@opsscale.tech")


@pytest_asyncio.fixture
async def memory_store() -> InMemoryStorageBackend:
    """Connected in-memory storage"""
    store = InMemoryStorageBackend()
    await store.connect()
    return store


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def valid_payload() -> dict:
    return {"name": "Ada", "email": "ada@example.com", "message": "hello"}


@pytest.fixture
def failing_notifier() -> RecordingNotifier:
    """Notifier whose transport always refuses the message"""
    return RecordingNotifier(error=NotificationError("relay refused"))
