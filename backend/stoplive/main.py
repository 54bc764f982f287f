"""FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from stoplive.api import network, stops, tracking
from stoplive.core.arrivals_client import ArrivalsClient
from stoplive.core.refresh_scheduler import REFRESH_PERIOD
from stoplive.core.scheduler import add_housekeeping_jobs, create_scheduler
from stoplive.core.session_registry import SessionRegistry

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    # Initialize services
    client = ArrivalsClient()
    scheduler = create_scheduler()
    registry = SessionRegistry(client, scheduler)
    add_housekeeping_jobs(scheduler, registry)

    # Wire up API modules
    tracking.registry = registry
    stops.client = client
    network.client = client

    scheduler.start()
    logger.info("Stop Live started - refreshing arrivals every %ds", REFRESH_PERIOD)

    yield

    # Shutdown
    registry.close_all()
    scheduler.shutdown(wait=False)
    tracking.registry = None
    stops.client = None
    network.client = None
    await client.close()
    logger.info("Stop Live shut down")


app = FastAPI(
    title="Stop Live - passenger bus tracking",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(tracking.router)
app.include_router(stops.router)
app.include_router(network.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "sessions": len(tracking.registry) if tracking.registry else 0}
