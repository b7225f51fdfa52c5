"""Shared test fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root to path for package and test imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

FIXTURES_DIR = Path(__file__).parent / "fixtures"


class MockContext:
    """Mock Context for testing probes without real system access."""

    def __init__(
        self,
        file_contents: dict[str, str | Exception] | None = None,
        env: dict[str, str] | None = None,
        now: int = 1_700_000_000,
    ):
        self.file_contents = file_contents or {}
        self.env = env or {}
        self.current_time = now
        self.files_read: list[str] = []

    def read_file(self, path: str) -> str:
        """Return mocked file content, or raise a mocked error."""
        self.files_read.append(path)
        if path not in self.file_contents:
            raise FileNotFoundError(f"No mock content for: {path}")
        content = self.file_contents[path]
        if isinstance(content, Exception):
            raise content
        return content

    def file_exists(self, path: str) -> bool:
        """Check if path is in mocked files."""
        return path in self.file_contents

    def get_env(self, key: str, default: str | None = None) -> str | None:
        """Return mocked environment variable."""
        return self.env.get(key, default)

    def now(self) -> int:
        """Return the mocked clock."""
        return self.current_time


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep config lookups away from the real home and working directory."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("HOSTPROBE_STATE_DIR", raising=False)
    monkeypatch.delenv("HOSTPROBE_LOG_DIR", raising=False)


@pytest.fixture
def mock_context():
    """Factory fixture for creating MockContext instances."""
    def _create(**kwargs) -> MockContext:
        return MockContext(**kwargs)
    return _create


@pytest.fixture
def probe_env(tmp_path) -> dict[str, str]:
    """Environment pointing state and logs into tmp_path."""
    return {
        "HOSTPROBE_STATE_DIR": str(tmp_path / "state"),
        "HOSTPROBE_LOG_DIR": str(tmp_path / "logs"),
    }


def load_fixture(category: str, name: str) -> str:
    """Load a fixture file by category and name."""
    fixture_path = FIXTURES_DIR / category / name
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture not found: {fixture_path}")
    return fixture_path.read_text()
