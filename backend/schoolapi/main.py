"""FastAPI application entrypoint.

This module builds the application for the school notification and
timetable backend and mounts the routers. Controllers are intentionally
thin: they accept requests, delegate to repositories and services, and
return JSON responses.

Endpoints implemented:
- GET /health
- GET /user/devices
- POST /user/devices
- POST /user/devices/remove
- DELETE /user/devices/{device_id}
- POST /timetable/lessons
- POST /timetable/find/course
- GET /timetable/grades
- GET /timetable/courses
- GET /timetable/lessons
- GET /timetable/rebuild
"""

import json
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.responses import Response
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .database import create_db_and_tables
from . import routes_devices, routes_timetable

app = FastAPI(title="School Notification and Timetable API")
logger = logging.getLogger("schoolapi.api")
if not logger.handlers:
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

app.include_router(routes_devices.router)
app.include_router(routes_timetable.router)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    req_id = request.headers.get("X-Request-ID", uuid.uuid4().hex)
    request.state.request_id = req_id
    started = time.perf_counter()
    response: Response
    try:
        response = await call_next(request)
    except Exception:
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
        logger.exception(
            "request_failed %s",
            json.dumps(
                {
                    "request_id": req_id,
                    "path": request.url.path,
                    "method": request.method,
                    "duration_ms": elapsed_ms,
                    "client": request.client.host if request.client else "unknown",
                },
                ensure_ascii=True,
            ),
        )
        raise
    response.headers["X-Request-ID"] = req_id
    elapsed_ms = round((time.perf_counter() - started) * 1000.0, 2)
    logger.info(
        "request_done %s",
        json.dumps(
            {
                "request_id": req_id,
                "path": request.url.path,
                "method": request.method,
                "status_code": response.status_code,
                "duration_ms": elapsed_ms,
            },
            ensure_ascii=True,
        ),
    )
    return response


@app.get("/health")
def health():
    """Lightweight health check for uptime monitoring."""
    return {"status": "ok"}
