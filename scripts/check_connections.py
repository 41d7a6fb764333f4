#!/usr/bin/env python3
"""
Connection Check Script

Run this to verify the database and AI provider connections.
Usage: python scripts/check_connections.py
"""

from talentbridge.db.postgres import test_postgres_connection
from talentbridge.db.mongodb import test_mongo_connection
from talentbridge.services.ai_client import get_ai_client
from talentbridge.core.config import get_settings


def main():
    settings = get_settings()
    print("=" * 50)
    print("TALENTBRIDGE - CONNECTION CHECK")
    print("=" * 50)

    print("\n[1] PostgreSQL...")
    print(f"    URL: postgresql://{settings.postgres_user}:****@{settings.postgres_host}:{settings.postgres_port}/{settings.postgres_db}")
    print("    CONNECTED" if test_postgres_connection() else "    FAILED")

    print("\n[2] MongoDB...")
    print(f"    URI: {settings.mongodb_uri}")
    print(f"    Database: {settings.mongodb_db}")
    print("    CONNECTED" if test_mongo_connection() else "    FAILED")

    print("\n[3] AI provider...")
    if settings.ai_enabled:
        print(f"    Base URL: {settings.ai_base_url}")
        print("    CONNECTED" if get_ai_client().test_connection() else "    FAILED")
    else:
        print("    API key not configured, template and heuristic fallbacks in use")

    print("\n" + "=" * 50)


if __name__ == "__main__":
    main()
