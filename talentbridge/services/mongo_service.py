"""
MongoDB Service - document and file storage.

Collections:
1. raw_resumes     - text extracted from uploaded resumes
2. parsed_resumes  - structured parse output (sections, skills, signals)

GridFS buckets:
1. audio         - recorded voice answers
2. resume_files  - original resume uploads

PostgreSQL rows (resumes, answers) hold the ids returned here.
"""

from datetime import datetime, timezone
from typing import Optional, List, Dict, Iterable, Tuple

import gridfs
from gridfs.errors import NoFile
from bson import ObjectId
from bson.errors import InvalidId
from pymongo.collection import Collection

from talentbridge.db.mongodb import get_collection, get_file_store, COLLECTIONS, FILE_BUCKETS


# ============================================================
# HELPER: Parse stored ids
# ============================================================

def to_object_id(value: str) -> Optional[ObjectId]:
    """Parse a stored id; None when it is not a valid ObjectId."""
    try:
        return ObjectId(value)
    except (InvalidId, TypeError):
        return None


# ============================================================
# RAW RESUMES COLLECTION
# ============================================================

class RawResumeService:
    """
    Original resume text, one document per upload.
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["raw_resumes"])

    def insert(self, application_id: int, resume_text: str, filename: str = None,
               file_id: str = None) -> str:
        """
        Insert a raw resume document.

        Returns:
            MongoDB ObjectId as string (store this in PostgreSQL)
        """
        doc = {
            "application_id": application_id,
            "resume_text": resume_text,
            "filename": filename,
            "file_id": file_id,
            "uploaded_at": datetime.now(timezone.utc),
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def get_texts(self, mongo_ids: Iterable[str]) -> Dict[str, str]:
        """Bulk fetch resume text keyed by raw document id."""
        oids = [oid for oid in (to_object_id(m) for m in mongo_ids) if oid is not None]
        if not oids:
            return {}
        cursor = self.collection.find({"_id": {"$in": oids}}, {"resume_text": 1})
        return {str(doc["_id"]): doc.get("resume_text") or "" for doc in cursor}


# ============================================================
# PARSED RESUMES COLLECTION
# ============================================================

class ParsedResumeService:
    """
    Structured resume data produced by resume_parser.parse_resume().

    Example parsed_data:
    {
        "contact": {"email": "a@b.com", "phone": "+1 555 0100"},
        "sections": {"experience": "...", "education": "..."},
        "skills": ["python", "sql"],
        "impact": {"numbers": 4, "percents": 2, "currency": 0, "verbs": 5},
        "presence": {"linkedin": true, "portfolio": false},
        "format_score": 0.8
    }
    """

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS["parsed_resumes"])

    def insert(self, application_id: int, job_id: int, raw_resume_id: str, parsed_data: dict) -> str:
        doc = {
            "application_id": application_id,
            "job_id": job_id,
            "raw_resume_id": raw_resume_id,
            "parsed_data": parsed_data,
            "parsed_at": datetime.now(timezone.utc),
            "version": 1
        }
        result = self.collection.insert_one(doc)
        return str(result.inserted_id)

    def get_many(self, mongo_ids: Iterable[str]) -> Dict[str, dict]:
        """Bulk fetch parsed_data keyed by document id."""
        oids = [oid for oid in (to_object_id(m) for m in mongo_ids) if oid is not None]
        if not oids:
            return {}
        cursor = self.collection.find({"_id": {"$in": oids}}, {"parsed_data": 1})
        return {str(doc["_id"]): doc.get("parsed_data") or {} for doc in cursor}

    def get_skills_for_applications(self, application_ids: List[int]) -> Dict[int, List[str]]:
        """Latest parsed skills per application."""
        if not application_ids:
            return {}
        cursor = self.collection.find(
            {"application_id": {"$in": list(application_ids)}},
            {"application_id": 1, "parsed_data.skills": 1},
            sort=[("parsed_at", -1)]
        )
        skills: Dict[int, List[str]] = {}
        for doc in cursor:
            app_id = doc["application_id"]
            if app_id not in skills:
                skills[app_id] = (doc.get("parsed_data") or {}).get("skills", [])
        return skills


# ============================================================
# GRIDFS FILE STORE
# ============================================================

class FileStore:
    """
    Binary uploads in a GridFS bucket. Keys are the GridFS file ids.
    """

    def __init__(self, bucket: str):
        self.fs: gridfs.GridFS = get_file_store(FILE_BUCKETS[bucket])

    def put(self, data: bytes, filename: str, content_type: str, **metadata) -> str:
        file_id = self.fs.put(
            data, filename=filename, metadata={"content_type": content_type, **metadata}
        )
        return str(file_id)

    def get(self, key: str) -> Optional[Tuple[bytes, str, str]]:
        """(data, filename, content_type), or None when the key is unknown."""
        oid = to_object_id(key)
        if oid is None:
            return None
        try:
            grid_out = self.fs.get(oid)
        except NoFile:
            return None
        content_type = (grid_out.metadata or {}).get("content_type") or "application/octet-stream"
        return grid_out.read(), grid_out.filename, content_type

    def delete(self, key: str) -> None:
        oid = to_object_id(key)
        if oid is not None:
            self.fs.delete(oid)


def get_audio_store() -> FileStore:
    return FileStore("audio")


def get_resume_file_store() -> FileStore:
    return FileStore("resume_files")
