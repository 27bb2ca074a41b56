import shutil
from pathlib import Path

import pytest

TEST_DATA_DIR = Path("data-tests")


@pytest.fixture
def data_dir() -> Path:
    """Wipe and re-create data-tests/ for tests that touch disk."""
    if TEST_DATA_DIR.exists():
        shutil.rmtree(TEST_DATA_DIR)
    TEST_DATA_DIR.mkdir()
    return TEST_DATA_DIR
    # leave data-tests around after tests for inspection; CI can ignore it


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch):
    """Keep a developer's .env generator settings out of the tests."""
    monkeypatch.delenv("GENERATOR_URL", raising=False)
    monkeypatch.delenv("GENERATOR_API_KEY", raising=False)
