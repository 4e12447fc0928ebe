import os
import sys
from pathlib import Path

import pytest

# Keep the repository free of Python bytecode and __pycache__ artifacts during tests.
sys.dont_write_bytecode = True

TESTS_ROOT = Path(__file__).resolve().parent
REPO_ROOT = TESTS_ROOT.parent
SRC_ROOT = REPO_ROOT / "src"

# Make src/ importable as 'git_vendor' and tests/ as 'helpers'
for p in (SRC_ROOT, TESTS_ROOT):
    if str(p) not in sys.path:
        sys.path.insert(0, str(p))


from git_vendor.core.logging import reset_logging_for_tests
from git_vendor.data import clear_caches
from helpers.env import TestGitRepo


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep developer settings out of every test.

    GIT_VENDOR_* overrides and global/system git config would otherwise leak
    into settings loading and into the git commands under test.
    """
    for key in list(os.environ):
        if key.startswith("GIT_VENDOR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CONFIG_GLOBAL", os.devnull)
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    clear_caches()
    yield
    reset_logging_for_tests()


@pytest.fixture
def git_repo(tmp_path: Path) -> TestGitRepo:
    """The local repository vendored content is merged into."""
    return TestGitRepo(tmp_path / "repo")


@pytest.fixture
def upstream(tmp_path: Path) -> TestGitRepo:
    """A second repository acting as the vendored dependency's remote."""
    return TestGitRepo(tmp_path / "upstream")
