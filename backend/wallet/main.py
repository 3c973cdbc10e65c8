import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wallet.config import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.create_tables_on_startup:
        from wallet.database import create_tables

        await create_tables()
        logger.info("Database tables ready")
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan, redirect_slashes=False)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from wallet import models  # noqa: E402,F401
from wallet.analytics.router import router as analytics_router  # noqa: E402
from wallet.disclosure.router import router as disclosure_router  # noqa: E402
from wallet.shares.router import router as shares_router  # noqa: E402
from wallet.verification.router import router as verification_router  # noqa: E402

app.include_router(shares_router)
app.include_router(analytics_router)
app.include_router(disclosure_router)
app.include_router(verification_router)


@app.get("/health")
async def health():
    return {"status": "ok"}
