"""
Global pytest configuration and fixtures for HAL testing.
"""
import json
import tempfile
import pytest
from pathlib import Path

from src.core.database import KeyValueStore
from src.core.dispatcher import OutboundQueue


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def sink():
    """Provide an empty outbound queue."""
    return OutboundQueue()


@pytest.fixture
def store(temp_dir):
    """Provide a key/value store backed by a temporary database file."""
    kv_store = KeyValueStore(str(temp_dir / "test.db"))
    yield kv_store
    kv_store.close()


@pytest.fixture
def test_config(temp_dir):
    """Provide test configuration."""
    return {
        "Host": "irc.example.com:6697",
        "Chan": "#hal-test",
        "Nick": "hal",
        "bot": {
            "prefix": "!"
        },
        "database": {
            "path": str(temp_dir / "hal.db")
        },
        "logging": {
            "level": "DEBUG",
            "console": False
        }
    }


@pytest.fixture
def config_file(temp_dir, test_config):
    """Write the test configuration to a hal.json file."""
    path = temp_dir / "hal.json"
    path.write_text(json.dumps(test_config), encoding="utf-8")
    return path


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep HAL_* variables from the host out of configuration loading."""
    for name in ("HAL_HOST", "HAL_CHAN", "HAL_NICK", "HAL_PREFIX", "HAL_DB_PATH", "HAL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
