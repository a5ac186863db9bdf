from __future__ import annotations

from datetime import datetime, timezone

from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy.orm import Session

from .config import settings
from .db import make_session
from .store import StateStore

app = FastAPI(title="matchbridge", version="0.1")


def get_session() -> Session:
    return make_session(settings.database_url)


@app.get("/", response_class=PlainTextResponse)
def index() -> str:
    return "Automation worker running: " + datetime.now(timezone.utc).isoformat()


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/snapshot")
def snapshot():
    session = get_session()
    try:
        payload = StateStore(session).get_json(settings.snapshot_key)
    finally:
        session.close()
    if payload is None:
        raise HTTPException(status_code=404, detail="No snapshot published yet")
    return JSONResponse(payload)
