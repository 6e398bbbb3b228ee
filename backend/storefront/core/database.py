"""
PostgreSQL (Supabase) access

Three ways in, each with its own use:
- psycopg2 with RealDictCursor: repositories and scripts (raw SQL)
- SQLAlchemy engine: table definitions in storefront.models, init_schema
- Supabase client: Postgres RPC functions (get_pincode_details)

Nothing connects at import time; missing credentials fail on first use.
"""
import time
import uuid
import logging
from functools import lru_cache

import psycopg2
import psycopg2.extras
from psycopg2.extras import RealDictCursor
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base
from supabase import create_client, Client

from .config import settings

logger = logging.getLogger(__name__)

# uuid / uuid[] columns come back as uuid.UUID
psycopg2.extras.register_uuid()

Base = declarative_base()


def _database_url() -> str:
    if not settings.DATABASE_URL:
        raise Exception("DATABASE_URL not configured")
    return settings.DATABASE_URL


@lru_cache(maxsize=1)
def get_engine():
    """Engine for schema management (create_all, plpgsql functions)"""
    return create_engine(_database_url(), pool_pre_ping=True, pool_size=2, max_overflow=0)


def get_db_connection_dict():
    """
    psycopg2 connection whose cursors return dict rows

    Callers own the connection:
        conn = get_db_connection_dict()
        cursor = conn.cursor()
        try:
            cursor.execute("SELECT id, code FROM coupons")
            rows = cursor.fetchall()
        finally:
            cursor.close()
            conn.close()
    """
    return psycopg2.connect(_database_url(), cursor_factory=RealDictCursor)


@lru_cache(maxsize=1)
def get_supabase() -> Client:
    """Service-role Supabase client, used for RPC calls only"""
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_ROLE_KEY:
        raise Exception("SUPABASE_URL / SUPABASE_SERVICE_ROLE_KEY not configured")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


def get_db_connection_with_retry(max_retries=3, retry_delay=1.0, cursor_factory=None):
    """
    psycopg2 connection that survives the Supabase pooler dropping SSL sessions

    Each attempt runs SELECT 1 before handing the connection out; delays
    double between attempts.

    Args:
        max_retries: connection attempts before giving up
        retry_delay: delay after the first failure, in seconds
        cursor_factory: e.g. RealDictCursor

    Raises:
        psycopg2.OperationalError: when every attempt fails
    """
    database_url = _database_url()

    for attempt in range(1, max_retries + 1):
        try:
            conn = psycopg2.connect(database_url, cursor_factory=cursor_factory)
            cursor = conn.cursor()
            cursor.execute("SELECT 1")
            cursor.close()
            return conn

        except psycopg2.OperationalError as e:
            kind = "SSL connection" if "SSL connection has been closed" in str(e) else "Connection"
            logger.warning(f"{kind} error on attempt {attempt}/{max_retries}: {e}")

            if attempt == max_retries:
                logger.error(f"Database unreachable after {max_retries} attempts")
                raise

            delay = retry_delay * (2 ** (attempt - 1))
            logger.info(f"Retrying database connection in {delay:.2f}s")
            time.sleep(delay)


def get_db_connection_dict_with_retry(max_retries=3, retry_delay=1.0):
    """get_db_connection_with_retry with dict rows (long-running scripts)"""
    return get_db_connection_with_retry(
        max_retries=max_retries,
        retry_delay=retry_delay,
        cursor_factory=RealDictCursor,
    )


def row_to_dict(row) -> dict:
    """
    Convert a RealDictCursor row into a plain dict with UUIDs as strings

    Domain models use string IDs; Supabase tables use uuid columns.
    """
    data = {}
    for key, value in dict(row).items():
        if isinstance(value, uuid.UUID):
            value = str(value)
        elif isinstance(value, list):
            value = [str(v) if isinstance(v, uuid.UUID) else v for v in value]
        data[key] = value
    return data
