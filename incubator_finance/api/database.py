"""
Database Connection Module

Provides the SQLAlchemy engine for the catalog store and milestone directory.
"""

import os
from functools import lru_cache

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

# Database URL from environment
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{os.getenv('POSTGRES_USER', 'incubator')}:"
    f"{os.getenv('POSTGRES_PASSWORD', 'password')}@"
    f"{os.getenv('POSTGRES_HOST', 'localhost')}:"
    f"{os.getenv('POSTGRES_PORT', '5432')}/"
    f"{os.getenv('POSTGRES_DB', 'incubator_finance')}"
)


def build_engine(database_url: str = DATABASE_URL) -> Engine:
    """Create an engine; pool sizing applies to server databases only."""
    if database_url.startswith("sqlite"):
        return create_engine(database_url)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=5,
        max_overflow=10,
    )


@lru_cache
def get_engine() -> Engine:
    """Process-wide engine, created on first use."""
    return build_engine(DATABASE_URL)


def check_connection(engine: Engine) -> bool:
    """Run a trivial query to confirm the database is reachable."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return True
