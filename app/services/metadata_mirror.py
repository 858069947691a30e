from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from pymongo import MongoClient

from app.core.config import Settings

logger = logging.getLogger(__name__)

# fields the mirror may contribute to read responses
ENRICHMENT_FIELDS = ("original_file_url", "demo_url")


class ProjectMetadataMirror:
    """
    Non-authoritative copy of project metadata in MongoDB, keyed by
    `supabase_id` (the relational project id as text).

    Callers decide what to do with PyMongoError; nothing is swallowed here.
    """

    def __init__(self, collection, client: Optional[MongoClient] = None):
        self.collection = collection
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> Optional["ProjectMetadataMirror"]:
        if not settings.mongodb_uri:
            return None
        client = MongoClient(settings.mongodb_uri, serverSelectionTimeoutMS=3000)
        coll = client[settings.mongodb_database][settings.mongodb_collection]
        return cls(coll, client)

    def upsert(self, project_id: str, fields: Dict[str, Any]) -> None:
        now = datetime.now(timezone.utc)
        self.collection.update_one(
            {"supabase_id": project_id},
            {
                "$set": {**fields, "updated_at": now},
                "$setOnInsert": {"created_at": now},
            },
            upsert=True,
        )

    def delete(self, project_id: str) -> None:
        self.collection.delete_one({"supabase_id": project_id})

    def find_many(self, project_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        ids = list(project_ids)
        if not ids:
            return {}
        out: Dict[str, Dict[str, Any]] = {}
        for doc in self.collection.find({"supabase_id": {"$in": ids}}):
            out[doc["supabase_id"]] = {k: doc.get(k) for k in ENRICHMENT_FIELDS if doc.get(k)}
        return out

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
