"""Application sync API server."""

from __future__ import annotations

import os
import secrets
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from skills.application_sync.config import DEFAULT_LOOKBACK_HOURS, Settings, load_settings
from skills.application_sync.extractor import CompletionFn
from skills.application_sync.metrics import RunCounters
from skills.application_sync.pipeline import build_runtime, run_sync
from skills.application_sync.sources.base import MessageSource
from skills.application_sync.stores.base import RecordStore


class SyncRequest(BaseModel):
    hours: int = Field(default=DEFAULT_LOOKBACK_HOURS, gt=0)


app = FastAPI(title="Application Sync API", version="0.1.0")

allowed_origins_raw = os.getenv("ALLOWED_ORIGINS", "*").strip()
if allowed_origins_raw == "*" or not allowed_origins_raw:
    allowed_origins = ["*"]
else:
    allowed_origins = [item.strip() for item in allowed_origins_raw.split(",") if item.strip()]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _load_settings() -> Settings:
    return load_settings()


def _build_runtime(settings: Settings) -> tuple[MessageSource, RecordStore, CompletionFn]:
    return build_runtime(settings, source="gmail")


def _require_cron_secret(request: Request, settings: Settings) -> None:
    if not settings.cron_secret:
        return
    header = request.headers.get("authorization", "")
    expected = f"Bearer {settings.cron_secret}"
    if not secrets.compare_digest(header.encode("utf-8"), expected.encode("utf-8")):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _run(hours: int, request: Request) -> dict[str, object]:
    try:
        settings = _load_settings()
    except Exception as exc:  # noqa: BLE001
        print(f"[SYNC FATAL] stage=config error={exc}", flush=True)
        raise HTTPException(status_code=500, detail="Server configuration error") from exc
    _require_cron_secret(request, settings)

    counters = RunCounters()
    try:
        source, store, complete = _build_runtime(settings)
        run_sync(hours, source, store, complete, settings, counters)
    except Exception as exc:  # noqa: BLE001
        counters.record_error("cron_critical", str(exc))
        print(f"[SYNC FATAL] error={exc}", flush=True)
        raise HTTPException(status_code=500, detail=str(exc)) from exc

    return {
        "success": True,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "stats": counters.stats(),
        "metrics": counters.summary(),
    }


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/api/cron/sync")
def cron_sync(request: Request, hours: int = Query(default=DEFAULT_LOOKBACK_HOURS, gt=0)) -> dict[str, object]:
    return _run(hours, request)


@app.post("/api/cron/sync")
def cron_sync_post(request: Request, payload: Optional[SyncRequest] = None) -> dict[str, object]:
    hours = payload.hours if payload is not None else DEFAULT_LOOKBACK_HOURS
    return _run(hours, request)
