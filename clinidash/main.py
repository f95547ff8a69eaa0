import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from clinidash.database import close_db, init_db
from clinidash.routers import chat, patients, prescriptions

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting clinidash...")
    await init_db()
    logger.info("Database initialized")
    yield
    await close_db()
    logger.info("clinidash shut down")


app = FastAPI(
    title="clinidash",
    description="Clinical dashboard API - patients, prescriptions and AI-assisted prescription drafting",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(patients.router)
app.include_router(prescriptions.router)
app.include_router(prescriptions.ai_router)
app.include_router(chat.router)


@app.get("/health")
async def health():
    return {"status": "ok"}
