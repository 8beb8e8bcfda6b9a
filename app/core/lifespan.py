# app/core/lifespan.py
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from pymongo.errors import PyMongoError
from app.db import http, mongo, redis as r

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # --- Startup ---
    # Mongo is mandatory; a failed ping leaves a lazy client (see db.mongo)
    await mongo.connect()
    try:
        await mongo.ensure_indexes(mongo.get_db())
        logger.info("Mongo indexes ensured")
    except PyMongoError as e:
        logger.warning("Mongo index creation failed (ignored): %s", e)

    # Redis optional
    await r.connect()

    await http.connect()

    yield

    # --- Shutdown ---
    await http.disconnect()
    await r.disconnect()
    await mongo.disconnect()
    logger.info("Shutdown complete")
