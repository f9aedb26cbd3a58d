from __future__ import annotations

import json
import logging
import sqlite3
from pathlib import Path
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from cupcake_store.core import startup_checks
from cupcake_store.core.logging_setup import JsonFormatter
from cupcake_store.core.metrics import InMemoryRequestMetrics
from cupcake_store.core.request_context import clear_request_context, set_request_context


def test_request_id_is_returned_in_response_header(monkeypatch):
    from cupcake_store import main

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    with TestClient(main.app) as client:
        response = client.get("/health")
        echoed = client.get("/health", headers={"X-Request-ID": "req-fixo"})

    assert response.status_code == 200
    request_id = response.headers.get("X-Request-ID")
    assert request_id
    UUID(request_id)
    assert echoed.headers["X-Request-ID"] == "req-fixo"


def test_cors_allows_known_origin_and_blocks_unknown_origin(monkeypatch):
    from cupcake_store import main
    from cupcake_store.core.config import CORS_ORIGINS

    monkeypatch.setattr(main, "_startup_tasks", lambda: None)

    allowed_origin = CORS_ORIGINS[0]
    blocked_origin = "https://blocked-origin.example"

    with TestClient(main.app) as client:
        allowed_response = client.options(
            "/health",
            headers={
                "origin": allowed_origin,
                "access-control-request-method": "GET",
            },
        )
        blocked_response = client.options(
            "/health",
            headers={
                "origin": blocked_origin,
                "access-control-request-method": "GET",
            },
        )

    assert allowed_response.status_code == 200
    assert allowed_response.headers.get("access-control-allow-origin") == allowed_origin

    assert blocked_response.status_code == 400
    assert blocked_response.headers.get("access-control-allow-origin") is None


def test_production_environment_rejects_sqlite(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "production")
    monkeypatch.setattr(startup_checks, "DATABASE_URL", "sqlite:///./forbidden.db")

    with pytest.raises(RuntimeError, match="SQLite is forbidden"):
        startup_checks.validate_database_environment()


def test_migration_check_fails_when_pending_migration(tmp_path: Path, monkeypatch):
    db_path = tmp_path / "pending.db"
    conn = sqlite3.connect(db_path)
    conn.execute("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)")
    conn.execute("INSERT INTO alembic_version (version_num) VALUES ('000000000000')")
    conn.commit()
    conn.close()

    from sqlalchemy import create_engine

    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setattr(startup_checks, "DATABASE_URL", "postgresql://store@localhost/cupcakes")
    engine = create_engine(f"sqlite:///{db_path}")

    with pytest.raises(RuntimeError, match="Pending migrations"):
        startup_checks.ensure_migrations_applied(
            engine=engine,
            alembic_config_path=Path(__file__).resolve().parents[1] / "alembic.ini",
        )


def test_migration_check_skipped_for_sqlite(monkeypatch):
    monkeypatch.setenv("ENVIRONMENT", "development")
    monkeypatch.setattr(startup_checks, "DATABASE_URL", "sqlite:///./dev.db")

    startup_checks.ensure_migrations_applied(engine=None, alembic_config_path=Path("missing.ini"))


def test_metrics_snapshot_per_role() -> None:
    metrics = InMemoryRequestMetrics()

    metrics.observe(endpoint="/api/orders", method="GET", status_code=200, duration_ms=10, user_role="client")
    metrics.observe(endpoint="/api/orders", method="GET", status_code=500, duration_ms=30, user_role="client")
    metrics.observe(endpoint="/api/products", method="GET", status_code=200, duration_ms=20)

    per_role = metrics.snapshot_per_role()
    per_endpoint = metrics.snapshot()

    assert per_role["client"]["total_requests"] == 2
    assert per_role["client"]["error_count"] == 1
    assert per_role["client"]["avg_duration_ms"] == 20.0
    assert per_role["anonymous"]["total_requests"] == 1
    assert per_endpoint["GET /api/orders"]["total_requests"] == 2


def test_json_formatter_masks_secrets_and_carries_context():
    set_request_context(request_id="req-1", user_id="sub-1", user_role="admin")
    try:
        record = logging.LogRecord(
            name="cupcake_store.test",
            level=logging.INFO,
            pathname=__file__,
            lineno=1,
            msg="exchange token=%s",
            args=("abc123",),
            exc_info=None,
        )
        payload = json.loads(JsonFormatter().format(record))
    finally:
        clear_request_context()

    assert payload["message"] == "exchange token=***"
    assert payload["request_id"] == "req-1"
    assert payload["user_role"] == "admin"
