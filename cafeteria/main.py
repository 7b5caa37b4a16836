"""FastAPI entrypoint for the cafeteria ordering API."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from cafeteria.api.v1.api import api_router
from cafeteria.core.config import settings
from cafeteria.core.exceptions import CafeteriaError
from cafeteria.core.log_config import configure_logging
from cafeteria.db.base import Base
from cafeteria.db.session import SessionLocal, engine
from cafeteria.services.user_service import ensure_default_admin

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, debug=settings.debug)
app.include_router(api_router, prefix="/api/v1")


@app.exception_handler(CafeteriaError)
async def cafeteria_error_handler(request: Request, exc: CafeteriaError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code, **exc.extra()},
    )


@app.on_event("startup")
def startup() -> None:
    configure_logging()
    logger.info("[BOOTSTRAP] Starting %s (env=%s)", settings.app_name, settings.app_env)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        try:
            admin_present = ensure_default_admin(session)
            logger.info("[BOOTSTRAP] default admin present: %s", "yes" if admin_present else "no")
        except Exception:
            logger.exception("[BOOTSTRAP] Admin bootstrap failed; continuing startup.")


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
