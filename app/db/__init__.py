"""
Database module - relational and MongoDB connections.
"""
from app.db.postgres import get_db_session, check_db_connection
from app.db.mongodb import get_mongo_db, check_mongo_connection

__all__ = [
    "get_db_session",
    "check_db_connection",
    "get_mongo_db",
    "check_mongo_connection"
]
