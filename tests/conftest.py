import pytest

from sift.core.store import SqliteStore


@pytest.fixture
def store(tmp_path) -> SqliteStore:
    return SqliteStore(tmp_path / "sift.db")


@pytest.fixture
def no_signing_key(monkeypatch) -> None:
    monkeypatch.delenv("MAILGUN_WEBHOOK_SIGNING_KEY", raising=False)
