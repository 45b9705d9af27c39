import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from app.core.config import get_settings
from app.core.database import init_db
from app.core.scheduler import start_scheduler, stop_scheduler
from app.api import challenge as challenge_router
from app.api import evidence as evidence_router
from app.api import ip_bans as ip_bans_router

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Evidence API starting (env={settings.app_env})")
    await init_db()
    start_scheduler()
    yield
    stop_scheduler()
    logger.info("Evidence API stopped")


app = FastAPI(
    title="Evidence Intake API",
    description="Public evidence submissions with anti-abuse checks, plus admin moderation",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.app_env == "development" else None,
    redoc_url=None,
)

# ─── CORS ─────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.app_env == "development" else [settings.base_url],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PATCH", "DELETE"],
    allow_headers=["*"],
)

# ─── Routers ──────────────────────────────────────────────────────────────────
app.include_router(challenge_router.router)   # GET /challenge
app.include_router(ip_bans_router.router)     # /evidence/ip-bans (before /evidence/{id})
app.include_router(evidence_router.router)    # /evidence, /evidence/cleanup, /evidence/{id}


# ─── Health check ─────────────────────────────────────────────────────────────
@app.get("/health")
async def health():
    return PlainTextResponse("OK")


# ─── Global error handler ─────────────────────────────────────────────────────
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error_code": "INTERNAL_ERROR", "message": "Internal server error"},
    )
