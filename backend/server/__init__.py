"""Server: FastAPI app creation, middleware, startup."""

import logging
import os
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware

from server import config
from server.database import init_db
from server.logging_config import init_logging, install_request_logging
from brain.errors import AIError

logger = logging.getLogger(__name__)

from auth.routes import router as auth_router
from users.routes import router as users_router
from plans.routes import router as plans_router
from tasks.routes import router as tasks_router
from learning.routes import router as learning_router
from insights.routes import router as insights_router
from brain.jobs import start_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    init_logging()
    init_db()
    scheduler = start_scheduler()
    logger.info("Adapta API %s started (%s)", config.APP_VERSION, config.ENVIRONMENT)
    yield
    # Shutdown
    if scheduler and scheduler.running:
        scheduler.shutdown()
    logger.info("Adapta API stopped")

app = FastAPI(title="Adapta API", version=config.APP_VERSION, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.ALLOWED_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
    allow_credentials=config.ALLOWED_ORIGINS != ["*"],
)
install_request_logging(app)


@app.exception_handler(AIError)
async def ai_error_handler(request: Request, exc: AIError):
    logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc)
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": "AI request failed", "error": str(exc)},
    )


# ─── API routes ──────────────────────────────────────────────
app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
app.include_router(users_router, prefix="/api", tags=["users"])
app.include_router(plans_router, prefix="/api", tags=["plans"])
app.include_router(tasks_router, prefix="/api", tags=["tasks"])
app.include_router(learning_router, prefix="/api", tags=["learning"])
app.include_router(insights_router, prefix="/api", tags=["insights"])


@app.get("/health")
def health_check():
    return {"status": "ok", "version": config.APP_VERSION}


# ─── Frontend ────────────────────────────────────────────────
# Mounted last so it never shadows the API.
if os.path.isdir(config.FRONTEND_DIR):
    app.mount("/", StaticFiles(directory=config.FRONTEND_DIR, html=True), name="frontend")
