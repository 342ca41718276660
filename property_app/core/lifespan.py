import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from services.reservation_service import ReservationService

from .get_db import async_engine, session_scope

logger = logging.getLogger("startup")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Waiting for application startup...")

    try:
        async with session_scope() as db:
            released = await ReservationService(db).release_expired_reservations()
            logger.info(f"Startup reservation sweep released {released} property lock(s).")
    except Exception:
        logger.exception("Startup reservation sweep failed")

    yield

    await async_engine.dispose()
    logger.info("Database engine disposed.")
