"""Shared pytest fixtures for gitpanel tests."""

import os
import tempfile
from concurrent.futures import ThreadPoolExecutor
from typing import AsyncGenerator, Generator

import httpx
import pytest

# Keep the import-time default data dir out of the source tree.
os.environ.setdefault("GITPANEL_DATA_DIR", tempfile.mkdtemp(prefix="gitpanel-tests-"))

from gitpanel.main import app
from gitpanel.store import ChangelistStore


@pytest.fixture
def temp_data_dir(tmp_path, monkeypatch) -> str:
    """Create a temporary data directory for test isolation."""
    data_dir = str(tmp_path / "data")
    os.makedirs(data_dir, exist_ok=True)
    monkeypatch.setenv("GITPANEL_DATA_DIR", data_dir)
    # Reset the db engine so it picks up the new data dir
    from gitpanel.db import init_db, reset_engine

    reset_engine()
    init_db()
    return data_dir


@pytest.fixture
def fresh_store(temp_data_dir, monkeypatch) -> Generator[ChangelistStore, None, None]:
    """Create a fresh ChangelistStore and patch the global singleton for API tests."""
    new_store = ChangelistStore()
    import gitpanel.api.changelists
    import gitpanel.store

    monkeypatch.setattr(gitpanel.store, "store", new_store)
    monkeypatch.setattr(gitpanel.api.changelists, "store", new_store)
    yield new_store
    from gitpanel.db import reset_engine

    reset_engine()


@pytest.fixture
def inline_executor() -> Generator[ThreadPoolExecutor, None, None]:
    """Run diff builds on a thread instead of a process pool."""
    from gitpanel.api import state as api_state

    executor = ThreadPoolExecutor(max_workers=1)
    api_state.set_executor(executor)
    yield executor
    api_state.set_executor(None)
    executor.shutdown(wait=True)


@pytest.fixture
async def api_client(fresh_store, inline_executor) -> AsyncGenerator[httpx.AsyncClient, None]:
    """Create an async HTTP client bound to the app."""
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture(scope="session")
def anyio_backend() -> str:
    """Force the AnyIO pytest plugin to run tests under asyncio.

    The dispatch channel relies on asyncio's run_in_executor.
    """
    return "asyncio"
