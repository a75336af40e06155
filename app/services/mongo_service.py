"""
MongoDB Service - generated plan drafts.

Collection:
1. generated_plans - LLM reply and parsed plan for one generation request

A request is fingerprinted (request_hash) so the same student asking for the
same target with the same inputs gets the stored draft instead of a new LLM
call.
"""

from datetime import datetime, timezone
from typing import Optional
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS


def serialize_doc(doc: dict) -> Optional[dict]:
    """Convert MongoDB document to JSON-serializable dict."""
    if doc is None:
        return None
    if "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


class GeneratedPlanService:
    """
    Handles generated plan draft storage.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["generated_plans"])

    def get_by_hash(self, request_hash: str) -> Optional[dict]:
        """Fetch a cached draft by request fingerprint."""
        doc = self.collection.find_one({"request_hash": request_hash})
        return serialize_doc(doc)

    def upsert(self, request_hash: str, student_id: int, target_id: str, plan: dict, raw_response: Optional[str]) -> None:
        """
        Store (or replace) the draft for a request fingerprint.

        Args:
            request_hash: fingerprint of the generation inputs
            student_id: relational student ID (foreign reference)
            target_id: company or exam id the plan is for
            plan: parsed plan (camelCase keys, as returned to clients)
            raw_response: LLM text, None when the fallback plan was used
        """
        self.collection.update_one(
            {"request_hash": request_hash},
            {"$set": {
                "request_hash": request_hash,
                "student_id": student_id,
                "target_id": target_id,
                "plan": plan,
                "raw_response": raw_response,
                "created_at": datetime.now(timezone.utc),
            }},
            upsert=True
        )
