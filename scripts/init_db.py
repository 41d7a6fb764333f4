#!/usr/bin/env python3
"""
Create the PostgreSQL tables and MongoDB indexes.

Usage: python scripts/init_db.py
"""

from pathlib import Path

from sqlalchemy import text

from talentbridge.db.postgres import engine
from talentbridge.db.mongodb import init_mongo_indexes

SCHEMA_FILE = Path(__file__).with_name("schema.sql")


def main():
    ddl = SCHEMA_FILE.read_text(encoding="utf-8")
    with engine.begin() as conn:
        conn.execute(text(ddl))
    print(f"Applied {SCHEMA_FILE.name}")

    init_mongo_indexes()
    print("MongoDB indexes created")


if __name__ == "__main__":
    main()
