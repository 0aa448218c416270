from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from contextlib import contextmanager
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from kanasu.core.config import settings
from kanasu.core.exceptions import DependencyError


def _engine_options(url: str) -> dict:
    # SQLite is only used for local runs and the test suite
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
            "echo": False,
        }
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 5,
        "pool_recycle": 3600,
        "echo": False,
        "connect_args": {
            "connect_timeout": 10,
        },
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

if engine.dialect.name == "sqlite":
    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

# Import Base from models
from kanasu.models.base import Base

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    expire_on_commit=False
)

def get_db():
    """Get database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def create_tables():
    """Create all database tables."""
    import kanasu.models  # noqa: F401 - registers every mapper on Base.metadata
    Base.metadata.create_all(bind=engine)


def drop_tables():
    """Drop all database tables (used by the test suite)."""
    import kanasu.models  # noqa: F401
    Base.metadata.drop_all(bind=engine)


@contextmanager
def transaction(db: Session):
    """Commit everything done inside the block at once, or nothing on error."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def delete_instance(db: Session, instance, label: str) -> None:
    """Delete one row; a foreign-key violation becomes a DependencyError."""
    try:
        with transaction(db):
            db.delete(instance)
    except IntegrityError as exc:
        raise DependencyError(
            f"Cannot delete {label} because other records depend on it. Please remove them first.",
            original_exception=exc,
        ) from exc
