"""
PostgreSQL access.

Everything relational (organizations, jobs, applications, inbox, events,
activity) is queried with raw SQL through these helpers; rows come back
as plain dicts.
"""

import logging
from contextlib import contextmanager
from typing import List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker

from talentbridge.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

engine = create_engine(
    settings.postgres_url,
    pool_size=5,
    max_overflow=10,
    pool_pre_ping=True,
    echo=settings.debug
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@contextmanager
def get_db_session():
    """One transaction: committed on clean exit, rolled back on error."""
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def test_postgres_connection() -> bool:
    try:
        with get_db_session() as db:
            return db.execute(text("SELECT 1")).scalar() == 1
    except Exception as e:
        logger.warning("postgres_unreachable error=%s", e)
        return False


def execute_raw_sql(sql: str, params: dict = None) -> List[dict]:
    """Run a query and return every row as a dict keyed by column name."""
    with get_db_session() as db:
        result = db.execute(text(sql), params or {})
        return [dict(row._mapping) for row in result]


def fetch_one(sql: str, params: dict = None) -> Optional[dict]:
    rows = execute_raw_sql(sql, params)
    return rows[0] if rows else None
