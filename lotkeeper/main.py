import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from lotkeeper.config import settings
from lotkeeper.middleware.exceptions import register_exception_handlers
from lotkeeper.routers import health, inbounds, outbounds, repack, sync, weighing

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger("lotkeeper")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the upload and GRN output folders before serving."""
    os.makedirs(settings.uploads_dir, exist_ok=True)
    os.makedirs(settings.grn_output_dir, exist_ok=True)
    logger.info("LotKeeper started (%s)", settings.environment)
    yield


app = FastAPI(
    title="LotKeeper",
    description="Metal warehouse lot tracking: inbound, weighing, repack and release",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(inbounds.router, prefix="/inbounds", tags=["inbounds"])
app.include_router(weighing.router, prefix="/actual-weight", tags=["weighing"])
app.include_router(repack.router, prefix="/repack", tags=["repack"])
app.include_router(outbounds.router, prefix="/outbounds", tags=["outbounds"])
app.include_router(sync.router, prefix="/sync", tags=["sync"])
