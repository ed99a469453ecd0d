from __future__ import annotations

import os
import uuid
from contextlib import asynccontextmanager
from dataclasses import replace
from typing import Optional

from fastapi import FastAPI, HTTPException, Request
from loguru import logger
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from tripwire.config import TripwireConfig, ensure_runtime_dirs, load_config
from tripwire.logging_config import configure_logging
from tripwire.middleware import SecurityEventMiddleware
from tripwire.request_context import PrincipalResolver
from tripwire.sinks import SecurityEventSink, build_sink, unwrap
from tripwire_rules import PatternRegistry


def build_app(
    config: Optional[TripwireConfig] = None,
    sink: Optional[SecurityEventSink] = None,
    principal_resolver: Optional[PrincipalResolver] = None,
    registry: Optional[PatternRegistry] = None,
) -> FastAPI:
    # Resolve ONCE. Never re-resolve later. Never mutate per-request.
    cfg = config or load_config()
    policy = cfg.policy()
    if registry is not None:
        policy = replace(policy, registry=registry)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            if cfg.sink == "sql":
                ensure_runtime_dirs(cfg.state_dir)
                # engine + tables are created by the sink; touching it proves the db works
                from tripwire.sinks.sql import SqlSecurityEventSink

                inner = unwrap(app.state.sink)
                if isinstance(inner, SqlSecurityEventSink):
                    with inner.engine.connect():
                        pass
            app.state.sink_init_ok = True
            app.state.sink_init_error = None
        except Exception as e:
            app.state.sink_init_ok = False
            app.state.sink_init_error = f"{type(e).__name__}: {e}"
            logger.opt(exception=True).error("security sink init failed")
        try:
            yield
        finally:
            try:
                app.state.sink.close()
            except Exception:
                logger.opt(exception=True).warning("security sink close failed")

    app = FastAPI(title="tripwire-core", version="0.1.0", lifespan=lifespan)

    # Freeze state at build time
    app.state.config = cfg
    app.state.sink = sink if sink is not None else build_sink(cfg)
    app.state.service = os.getenv("TW_SERVICE", "tripwire-core")
    app.state.env = os.getenv("TW_ENV", "dev")
    app.state.app_instance_id = str(uuid.uuid4())
    app.state.sink_init_ok = cfg.sink != "sql"
    app.state.sink_init_error = None

    app.add_middleware(
        SecurityEventMiddleware,
        sink=app.state.sink,
        config=cfg,
        principal_resolver=principal_resolver,
        policy=policy,
    )

    @app.get("/health")
    async def health(request: Request) -> dict:
        return {
            "status": "ok",
            "service": request.app.state.service,
            "env": request.app.state.env,
            "inspection_enabled": bool(cfg.enabled),
            "sink": cfg.sink,
            "app_instance_id": request.app.state.app_instance_id,
        }

    @app.get("/health/live")
    async def health_live() -> dict:
        return {"status": "live"}

    @app.get("/health/ready")
    async def health_ready() -> dict:
        if not bool(app.state.sink_init_ok):
            raise HTTPException(
                status_code=503,
                detail=f"sink_init_failed: {app.state.sink_init_error or 'unknown'}",
            )
        return {"status": "ready", "sink": cfg.sink}

    @app.get("/metrics")
    async def metrics() -> Response:
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)

    return app


_config = load_config()
configure_logging(_config.log_level)

app = build_app(_config)
