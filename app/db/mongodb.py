"""
MongoDB Connection Utility

MongoDB stores:
- AI-generated plan drafts (raw LLM reply + parsed plan)

WHY MongoDB for these?
- Schema-flexible: LLM outputs vary in structure
- Document-oriented: a draft is self-contained until the student adds it
- Only the plan the student keeps is written to the relational tables
"""
import logging

from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection
from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=settings.mongodb_timeout_ms)
    return _client


def get_mongo_db() -> Database:
    """Get the career_docs database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def get_collection(name: str) -> Collection:
    db = get_mongo_db()
    return db[name]


def check_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except Exception as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "generated_plans": "generated_plans",
}


def init_mongo_indexes():
    """
    Create indexes for better query performance.
    Call this once during app startup.
    """
    db = get_mongo_db()

    # One cached draft per request fingerprint
    db[COLLECTIONS["generated_plans"]].create_index("request_hash", unique=True)
    db[COLLECTIONS["generated_plans"]].create_index([
        ("student_id", 1),
        ("created_at", -1)
    ])

    logger.info("MongoDB indexes created")
