"""FastAPI application entrypoint.

This module assembles the EMR CRUD API: it configures logging and CORS,
installs the request-context middleware, creates the database tables and
mounts one CRUD router per entity registered in `models.ENTITY_MODELS`
(see `controllers` for the endpoint contract).

Endpoints implemented:
- POST/GET      /api/<entity>
- GET/PUT/PATCH/DELETE /api/<entity>/{id}
- GET /health
"""

from fastapi import FastAPI, Request
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware
import json
import logging
import time
import uuid
from .controllers import build_entity_router
from .database import create_db_and_tables
from .models import ENTITY_MODELS
from .config import settings

app = FastAPI(title="EMR API")
logger = logging.getLogger("emr_api.api")
if not logging.getLogger().handlers:
    logging.basicConfig(level=settings.LOG_LEVEL)

if settings.ALLOW_DEV_CORS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

create_db_and_tables()

for _name, _model in ENTITY_MODELS.items():
    app.include_router(build_entity_router(_name, _model))


def _request_log_line(request: Request, req_id: str, started: float, status_code=None) -> str:
    entry = {
        "request_id": req_id,
        "path": request.url.path,
        "method": request.method,
        "duration_ms": round((time.perf_counter() - started) * 1000.0, 2),
        "client": request.client.host if request.client else "unknown",
    }
    if status_code is not None:
        entry["status_code"] = status_code
    return json.dumps(entry, ensure_ascii=True)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        logger.exception("request_failed %s", _request_log_line(request, req_id, started))
        raise
    response.headers["X-Request-ID"] = req_id
    if request.url.path.startswith("/api"):
        logger.info("request_done %s", _request_log_line(request, req_id, started, response.status_code))
    return response


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok", "entities": len(ENTITY_MODELS)}
