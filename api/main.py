"""
KeiDispatch — FastAPI Backend
Same-day delivery quoting and dispatch
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings
from db.database import engine, Base, async_session
from routers import orders, quotes, vehicles
from services import maps
from services.tariffs import seed_default_vehicles
import models  # noqa: F401  (registers tables on Base.metadata)

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    # Startup
    logger.info("KeiDispatch API starting...")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.SEED_DEFAULT_VEHICLES:
        async with async_session() as db:
            await seed_default_vehicles(db)
    yield
    # Shutdown
    await maps.close()
    await engine.dispose()
    logger.info("KeiDispatch API shut down.")


app = FastAPI(
    title="KeiDispatch API",
    description="Fare quoting and order dispatch for same-day light-van delivery",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ───────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ────────────────────────────────────────────────
app.include_router(vehicles.router, prefix="/api/vehicles", tags=["Vehicles"])
app.include_router(quotes.router, prefix="/api/quotes", tags=["Quotes"])
app.include_router(orders.router, prefix="/api/orders", tags=["Orders"])


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "KeiDispatch API"}
