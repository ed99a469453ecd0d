from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Dict, Optional

from fastapi import FastAPI, HTTPException, Request

from tripwire.config import load_config
from tripwire.sinks import SecurityEventSink
from tripwire_rules import (
    ArgumentError,
    InvalidOperationError,
    SecurityError,
    UnauthorizedAccessError,
)

BROWSER_UA = (
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

_BOOM: Dict[str, Callable[[], Exception]] = {
    "security": lambda: SecurityError("policy violated"),
    "unauthorized": lambda: UnauthorizedAccessError("not yours"),
    "permission": lambda: PermissionError("denied"),
    "invalid": lambda: InvalidOperationError("bad state"),
    "argument": lambda: ArgumentError("bad input"),
    "value": lambda: ValueError("plain value error"),
}


def add_test_routes(app: FastAPI) -> None:
    """Endpoints the HTTP tests drive traffic through."""

    @app.get("/echo")
    async def echo(request: Request) -> dict:
        return {"path": request.url.path, "query": request.url.query}

    @app.api_route("/submit", methods=["POST", "PUT", "PATCH"])
    async def submit(request: Request) -> dict:
        body = await request.body()
        form = await request.form()
        fields = {k: v for k, v in form.multi_items() if isinstance(v, str)}
        return {"raw": body.decode("utf-8", errors="replace"), "fields": fields}

    @app.get("/slow")
    async def slow() -> dict:
        await asyncio.sleep(0.05)
        return {"ok": True}

    @app.get("/admin/panel")
    async def admin_panel() -> dict:
        return {"ok": True}

    @app.get("/administrator")
    async def administrator() -> dict:
        return {"ok": True}

    @app.get("/api/items")
    async def api_items() -> dict:
        return {"items": []}

    @app.get("/account/late")
    async def account_late(request: Request) -> dict:
        # principal only known once the endpoint ran
        request.state.user_id = "late-user"
        return {"ok": True}

    @app.get("/admin/boom")
    async def admin_boom() -> dict:
        raise SecurityError("admin area violation")

    @app.get("/admin/forbidden")
    async def admin_forbidden() -> dict:
        raise HTTPException(status_code=403, detail="forbidden")

    @app.get("/boom/{kind}")
    async def boom(kind: str) -> dict:
        raise _BOOM[kind]()


def build_app_factory(tmp_path: Path, default_sink: SecurityEventSink) -> Callable[..., Any]:
    """
    Returns a callable:
        app = build_app(slow_request_threshold_s=0.01, principal_resolver=...)

    Config starts from env (pinned by conftest) and keyword overrides replace
    individual TripwireConfig fields.
    """

    def _build(
        *,
        sink: Optional[SecurityEventSink] = None,
        principal_resolver: Optional[Callable[[Request], Optional[str]]] = None,
        **overrides: Any,
    ) -> FastAPI:
        from tripwire.main import build_app

        fields: Dict[str, Any] = {
            "sink": "memory",
            "db_url": f"sqlite:///{(tmp_path / 'tripwire-test.db').as_posix()}",
        }
        fields.update(overrides)
        cfg = replace(load_config(), **fields)

        app = build_app(
            config=cfg,
            sink=sink if sink is not None else default_sink,
            principal_resolver=principal_resolver,
        )
        add_test_routes(app)
        return app

    return _build


def header_user(request: Request) -> Optional[str]:
    return request.headers.get("x-test-user")
