from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from origin_api.config import settings


def _build_engine():
    url = settings.database_url
    if url.startswith("sqlite"):
        # SQLite is for local runs and the test-suite only.
        # check_same_thread=False: FastAPI may hand the session to a worker thread.
        sqlite_engine = create_engine(url, connect_args={"check_same_thread": False})

        @event.listens_for(sqlite_engine, "connect")
        def _enable_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

        return sqlite_engine

    # pool_pre_ping=True: SQLAlchemy will test every connection before using it.
    # This prevents "connection reset" errors after Postgres restarts or idle timeouts.
    return create_engine(
        url,
        pool_pre_ping=True,
        pool_size=10,        # number of persistent connections in pool
        max_overflow=20,     # extra connections allowed beyond pool_size under load
    )


# ── Engine ────────────────────────────────────────────────────────────────────
engine = _build_engine()

# ── Session Factory ───────────────────────────────────────────────────────────
SessionLocal = sessionmaker(
    autocommit=False,   # we manage commits explicitly; critical for atomic ops
    autoflush=False,    # don't auto-flush; we control when SQL is sent to DB
    bind=engine,
)


# ── Declarative Base ──────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


# ── Dependency ────────────────────────────────────────────────────────────────
def get_db():
    """
    FastAPI dependency that yields a DB session and guarantees cleanup.
    Use as: db: Session = Depends(get_db)
    The session is closed even if an exception is raised inside the endpoint.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
