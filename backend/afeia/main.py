# afeia morning review api
# fastapi app with async mongodb, jwt auth, and the attention prioritization engine

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from afeia.config import settings
from afeia.services.db import db
from afeia.routers import clients, morning_review

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """startup: connect to mongodb. shutdown: close connection."""
    logger.info("Starting Afeia morning review API...")
    await db.connect()
    logger.info("Afeia morning review API ready")
    yield
    logger.info("Shutting down Afeia morning review API...")
    await db.close()


app = FastAPI(
    title="Afeia Morning Review API",
    description="Prioritizes a practitioner's caseload: attention scores, primary signals, suggested actions, guided review",
    version="0.1.0",
    lifespan=lifespan,
)

# cors, allow frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL, "http://localhost:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# register routers
app.include_router(morning_review.router)
app.include_router(clients.router)


@app.get("/health")
async def health_check():
    """basic health check endpoint"""
    return {"status": "ok", "service": "afeia-api"}
