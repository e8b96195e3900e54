"""MongoDB connection lifecycle for the FastAPI app.

The database comes from MONGODB_DATABASE when set, otherwise from the path of
MONGODB_URL, falling back to roster_compliance.
"""

import logging
import os
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from beanie import init_beanie
from dotenv import load_dotenv

from .models import OrganizationSettingsDoc, ShiftDoc

load_dotenv()

MONGODB_URL = os.getenv("MONGODB_URL", "mongodb://localhost:27017/roster_compliance")
MONGODB_DATABASE = os.getenv("MONGODB_DATABASE")
DEFAULT_DATABASE = "roster_compliance"

DOCUMENT_MODELS = [ShiftDoc, OrganizationSettingsDoc]

_client: AsyncIOMotorClient | None = None
_database: AsyncIOMotorDatabase | None = None


def _select_database(client: AsyncIOMotorClient) -> AsyncIOMotorDatabase:
    if MONGODB_DATABASE:
        return client[MONGODB_DATABASE]
    return client.get_default_database(DEFAULT_DATABASE)


async def init_db() -> AsyncIOMotorDatabase:
    """Connect and register the beanie documents. Later calls reuse the open connection."""
    global _client, _database

    if _database is not None:
        return _database

    # Stored datetimes come back aware (UTC)
    client = AsyncIOMotorClient(MONGODB_URL, tz_aware=True)
    database = _select_database(client)
    await init_beanie(database=database, document_models=DOCUMENT_MODELS)

    _client, _database = client, database
    logging.info(f"Connected to MongoDB database {database.name}")
    return database


def get_database() -> AsyncIOMotorDatabase:
    if _database is None:
        raise RuntimeError("Database not initialized. Call init_db() first.")
    return _database


async def close_db():
    global _client, _database
    if _client is not None:
        _client.close()
        logging.info("MongoDB connection closed")
    _client = None
    _database = None
