"""
Database configuration and setup for SQLAlchemy.

This module handles database connection management, session creation,
and provides the foundation for all database operations in the application.
"""

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, sessionmaker

from clinichub.config.settings import settings


def enable_sqlite_savepoints(target: Engine) -> Engine:
    """
    Let SQLAlchemy own BEGIN on pysqlite connections.
    
    The pysqlite driver defers BEGIN until the first DML statement, which
    breaks SAVEPOINT semantics used by the retry-as-update path.
    """
    @event.listens_for(target, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return target


# Create SQLAlchemy engine
# For SQLite, we need check_same_thread=False to allow multiple threads
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False} if "sqlite" in settings.database_url else {},
    echo=False
)

if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

# Create SessionLocal class for database sessions
SessionLocal = sessionmaker(autoflush=False, bind=engine)

# Base class for all SQLAlchemy models
Base = declarative_base()


def create_tables(bind=None):
    """
    Create all database tables.
    
    This function creates all tables defined by SQLAlchemy models
    that inherit from Base. Used for initial database setup.
    """
    import clinichub.models  # noqa: F401  registers every model with Base.metadata
    Base.metadata.create_all(bind=bind or engine)


def drop_tables(bind=None):
    """
    Drop all database tables.
    
    Useful for testing or resetting the database.
    """
    import clinichub.models  # noqa: F401
    Base.metadata.drop_all(bind=bind or engine)
