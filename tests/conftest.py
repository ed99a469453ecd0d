from __future__ import annotations

import os
from pathlib import Path

import pytest

# IMPORTANT: this runs at import time (before tripwire.config.paths is imported by tests)
BASE = Path(os.getenv("PYTEST_TMP_BASE", "/tmp")) / "tripwire_pytest"
STATE = BASE / "state"
STATE.mkdir(parents=True, exist_ok=True)

os.environ.setdefault("TW_ENV", "dev")

# Force db to writable location for tests (bypasses /var/lib defaults)
os.environ["TW_STATE_DIR"] = str(STATE)
os.environ["TW_DB_URL"] = f"sqlite:///{(STATE / 'tripwire.db').as_posix()}"
os.environ.pop("TW_SINK", None)
os.environ.pop("TW_SINK_QUEUE_SIZE", None)

from fastapi.testclient import TestClient  # noqa: E402

from _harness import build_app_factory  # noqa: E402
from tripwire.sinks import InMemorySecurityEventSink  # noqa: E402


@pytest.fixture
def memory_sink() -> InMemorySecurityEventSink:
    return InMemorySecurityEventSink()


@pytest.fixture
def build_app(tmp_path, memory_sink):
    return build_app_factory(tmp_path, memory_sink)


@pytest.fixture
def client(build_app) -> TestClient:
    return TestClient(build_app())
