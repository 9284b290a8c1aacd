import pytest

from lending_library import HistoryRepository, Library
from lending_library.config import settings
from lending_library.ui_helpers import OUTPUT_MODE_ENV


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, monkeypatch):
    # Keep every test away from the real data/history.json and shared CLI output mode
    monkeypatch.setattr(settings, "history_file", str(tmp_path / "default" / "history.json"))
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")


@pytest.fixture
def history_file(tmp_path):
    return tmp_path / "data" / "history.json"


@pytest.fixture
def repo(history_file):
    return HistoryRepository(history_file)


@pytest.fixture
def lib(repo):
    return Library(history_repository=repo)
