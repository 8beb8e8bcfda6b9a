# app/db/mongo.py
import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import PyMongoError
from app.core.config import get_settings
import certifi

logger = logging.getLogger(__name__)
settings = get_settings()

_client: AsyncIOMotorClient | None = None
_db: AsyncIOMotorDatabase | None = None


def get_client() -> AsyncIOMotorClient:
    assert _client is not None, "Mongo client not initialized"
    return _client


def get_db() -> AsyncIOMotorDatabase:
    assert _db is not None, "Mongo DB not initialized"
    return _db


def _new_client() -> AsyncIOMotorClient:
    # Atlas (+srv) needs TLS with an explicit CA bundle inside containers
    tls = settings.MONGO_URI.startswith("mongodb+srv://")
    kwargs = {"tls": True, "tlsCAFile": certifi.where()} if tls else {}
    return AsyncIOMotorClient(
        settings.MONGO_URI,
        uuidRepresentation="standard",
        serverSelectionTimeoutMS=6000,
        connectTimeoutMS=6000,
        tz_aware=True,
        **kwargs,
    )


async def connect():
    """
    Create the Motor client and ping it.
    A failed ping does not crash the app: the client stays lazy and the
    first real query retries the connection.
    """
    global _client, _db

    _client = _new_client()
    _db = _client[settings.MONGO_DB]
    try:
        await _client.admin.command("ping")
        logger.info("Mongo connected (ping ok) db=%s", settings.MONGO_DB)
    except PyMongoError as e:
        logger.warning("Mongo ping at startup failed: %s (lazy connection on first query)", e)


async def ensure_indexes(db: AsyncIOMotorDatabase) -> None:
    """Indexes backing the lookups done by the repositories."""
    await db["products"].create_index([("id", ASCENDING)], unique=True)
    await db["products"].create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    await db["products"].create_index([("status", ASCENDING), ("created_at", DESCENDING)])
    await db["products"].create_index([("shuffle_key", ASCENDING), ("id", ASCENDING)])
    await db["transactions"].create_index([("item_id", ASCENDING), ("created_at", DESCENDING)])
    await db["transactions"].create_index([("image_url", ASCENDING)], sparse=True)
    # Not unique: (user, product) uniqueness is handled by the rating upsert
    await db["ratings"].create_index([("user_id", ASCENDING), ("product_id", ASCENDING)])
    await db["ratings"].create_index([("product_id", ASCENDING)])
    await db["users"].create_index([("id", ASCENDING)])


async def disconnect():
    global _client, _db
    if _client:
        _client.close()
    _client = None
    _db = None
