from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, declarative_base
from utsalapp.config import get_settings

settings = get_settings()


def enable_sqlite_foreign_keys(sqlite_engine):
    """SQLite ships with foreign key enforcement off; turn it on per connection."""

    @event.listens_for(sqlite_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# SQLite needs different config than PostgreSQL
if settings.database_url.startswith("sqlite"):
    engine = create_engine(
        settings.database_url,
        connect_args={"check_same_thread": False}  # Needed for SQLite
    )
    enable_sqlite_foreign_keys(engine)
else:
    engine = create_engine(
        settings.database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20
    )

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def init_db(bind=None):
    """Create all tables on the given engine (defaults to the configured one)."""
    from utsalapp import models  # noqa: F401  registers the tables on Base

    Base.metadata.create_all(bind=bind or engine)


_storage = None


def get_storage():
    """Dependency returning the shared entity store for the configured backend."""
    global _storage
    if _storage is None:
        from utsalapp.storage import MemoryStorage, SqlStorage

        if settings.storage_backend == "sql":
            init_db()
            _storage = SqlStorage(SessionLocal)
        else:
            _storage = MemoryStorage()
    return _storage
