"""FastAPI application entrypoint: lifespan catalog load and routers."""
from contextlib import asynccontextmanager
import logging
import os

from fastapi import FastAPI

from app.routers import eiq
from app.services.eiq_catalog_service import load_catalog

EIQ_LOG_LEVEL = os.environ.get("EIQ_LOG_LEVEL", "INFO")

logging.basicConfig(
    level=getattr(logging, EIQ_LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the product catalog once before serving requests."""
    app.state.catalog = await load_catalog()
    logger.info(f"EIQ calculator ready with {len(app.state.catalog)} products")
    yield


app = FastAPI(title="Calculadora EIQ", lifespan=lifespan)
app.include_router(eiq.router)


@app.get("/health")
async def health():
    catalog = getattr(app.state, "catalog", None) or {}
    return {"status": "ok", "products": len(catalog)}
