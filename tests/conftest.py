"""Pytest configuration and fixtures for the automation engine.

Unit tests run against InMemoryWorkflowStore (same conditional status
semantics as the SQL store). DB-dependent tests use the sql_store fixture
and are skipped when DATABASE_URL is not set; run without DB via:
pytest -m 'not requires_db'.
"""

import pytest

from automation.domain.exceptions import SqlNotConfiguredException
from tests.fakes import InMemoryWorkflowStore, RecordingRunner


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    return InMemoryWorkflowStore()


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def settings_env(monkeypatch):
    """Clear cached settings before and after a test that overrides env vars."""
    from automation.core.config import get_settings

    get_settings.cache_clear()
    yield monkeypatch
    get_settings.cache_clear()


@pytest.fixture
async def sql_store():
    """SqlWorkflowStore against DATABASE_URL. Skips (pytest.skip) when Postgres is not configured.

    Requires migrations applied: alembic upgrade head.
    """
    from automation.infrastructure.persistence import database
    from automation.infrastructure.persistence.workflow_store import SqlWorkflowStore

    try:
        session_factory = database.get_session_factory()
    except SqlNotConfiguredException:
        pytest.skip(
            "Postgres not configured: set DATABASE_URL, then run: alembic upgrade head"
        )
    yield SqlWorkflowStore(session_factory)
    await database.dispose_engine()
