from dataclasses import replace
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

import tripwire.main as main
from tripwire.config import load_config
from tripwire.sinks import unwrap
from tripwire.sinks.sql import SqlSecurityEventSink


@pytest.mark.contract
def test_health_endpoints(client):
    r = client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["status"] == "ok"
    assert body["service"] == "tripwire-core"
    assert body["inspection_enabled"] is True
    assert body["app_instance_id"]

    assert client.get("/health/live").json() == {"status": "live"}


@pytest.mark.contract
def test_ready_with_memory_sink(build_app):
    with TestClient(build_app()) as c:
        r = c.get("/health/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ready", "sink": "memory"}


@pytest.mark.contract
def test_ready_with_sql_sink(tmp_path):
    cfg = replace(
        load_config(),
        sink="sql",
        db_url=f"sqlite:///{(tmp_path / 'ready.db').as_posix()}",
        state_dir=tmp_path / "state",
    )
    app = main.build_app(config=cfg)
    assert isinstance(unwrap(app.state.sink), SqlSecurityEventSink)
    with TestClient(app) as c:
        r = c.get("/health/ready")
    assert r.status_code == 200
    assert r.json() == {"status": "ready", "sink": "sql"}
    assert (tmp_path / "state").is_dir()


@pytest.mark.contract
def test_metrics_exposes_security_counters(client):
    client.get("/health", headers={"User-Agent": "sqlmap/1.7"})
    r = client.get("/metrics")
    assert r.status_code == 200
    assert "text/plain" in r.headers["content-type"]
    assert "tripwire_security_events_total" in r.text
    assert 'category="SecurityScannerUserAgent"' in r.text


def test_default_app_instance_exists():
    assert main.app.title == "tripwire-core"
    txt = (Path(__file__).resolve().parents[1] / "tripwire" / "main.py").read_text(encoding="utf-8")
    assert "def build_app" in txt
    assert "app = build_app" in txt
