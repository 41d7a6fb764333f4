"""
MongoDB access.

Holds the schema-flexible side of an application: raw resume text, parsed
resume documents and binary uploads in GridFS (resume files, voice
answers). PostgreSQL rows point at these by id.
"""
import logging

import gridfs
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.collection import Collection

from talentbridge.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

COLLECTIONS = {
    "raw_resumes": "raw_resumes",
    "parsed_resumes": "parsed_resumes",
}

FILE_BUCKETS = {
    "audio": "audio",
    "resume_files": "resume_files",
}

_client: MongoClient = None


def get_mongo_db() -> Database:
    """Lazily connect; pymongo pools connections inside the client."""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri)
    return _client[settings.mongodb_db]


def get_collection(name: str) -> Collection:
    return get_mongo_db()[name]


def get_file_store(bucket: str) -> gridfs.GridFS:
    return gridfs.GridFS(get_mongo_db(), collection=bucket)


def test_mongo_connection() -> bool:
    try:
        get_mongo_db().client.admin.command("ping")
        return True
    except Exception as e:
        logger.warning("mongodb_unreachable error=%s", e)
        return False


def init_mongo_indexes():
    """Lookup indexes for resume documents; safe to call on every startup."""
    db = get_mongo_db()
    db[COLLECTIONS["raw_resumes"]].create_index("application_id")
    for field in ("application_id", "job_id"):
        db[COLLECTIONS["parsed_resumes"]].create_index(field)
    logger.info("mongodb_indexes_ready")
