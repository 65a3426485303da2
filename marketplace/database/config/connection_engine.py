"""
Engine and declarative base for the marketplace schema.

PostgreSQL (psycopg2) in deployments; the test suite points
`DB_DRIVER_NAME` at `sqlite` and `DB_DATABASE_NAME` at a temp file. SQLite
connections are opened with `check_same_thread=False` because FastAPI runs
sync dependencies in a thread pool. Every entity inherits from
`declarativeBase`, and `schema.py` creates the tables from `metadata`.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import URL
from sqlalchemy.orm import declarative_base
from sqlalchemy.schema import MetaData
from marketplace.database.config.config import settings

connection_url = URL.create(
    drivername=settings.DB_DRIVER_NAME,
    username=settings.DB_USERNAME,
    password=settings.DB_PASSWORD,
    host=settings.DB_HOST,
    port=settings.DB_PORT,
    database=settings.DB_DATABASE_NAME,
)
"""SQLAlchemy connection URL built from Settings."""

connect_args = {"check_same_thread": False} if settings.DB_DRIVER_NAME.startswith("sqlite") else {}

connection_engine = create_engine(connection_url, connect_args=connect_args, pool_pre_ping=True)
"""Engine object: core interface to the database (connections, pooling, SQL execution)."""

metadata = MetaData()
"""Shared schema metadata for every table."""

declarativeBase = declarative_base(metadata=metadata)
"""Declarative Base: root class for ORM models."""
