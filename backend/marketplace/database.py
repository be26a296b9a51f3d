from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from .config import settings


def build_engine(url: str):
    """
    Create the SQLAlchemy engine.

    SQLite: check_same_thread=False so FastAPI worker threads and the
    sweeper thread can share the pool; the busy timeout makes concurrent
    writers wait for the write lock instead of failing immediately.
    """
    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            connect_args={
                "check_same_thread": False,
                "timeout": settings.sqlite_busy_timeout,
            },
        )

        # Foreign keys are off by default in SQLite
        @event.listens_for(engine, "connect")
        def enable_sqlite_fk(dbapi_connection, _):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return engine

    return create_engine(url, pool_pre_ping=True, pool_recycle=300)


engine = build_engine(settings.resolved_database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


# Dependency for FastAPI
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
