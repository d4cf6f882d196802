"""
Database configuration and connection pooling
"""
import logging
import threading
import time

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import make_url
from sqlalchemy.orm import sessionmaker

from classchat.core.config import settings

logger = logging.getLogger(__name__)

# Disable verbose SQLAlchemy logs
logging.getLogger('sqlalchemy.engine').setLevel(logging.WARNING)
logging.getLogger('sqlalchemy.pool').setLevel(logging.WARNING)

SLOW_QUERY_SECONDS = 1.0


def _engine_options(database_url: str) -> dict:
    """Pool options for server databases, thread-safe connect args for SQLite"""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {
            "connect_args": {"check_same_thread": False, "timeout": 30},
        }
    return {
        "pool_size": settings.POOL_SIZE,
        "max_overflow": settings.MAX_OVERFLOW,
        "pool_timeout": settings.POOL_TIMEOUT,
        "pool_recycle": settings.POOL_RECYCLE,
        "pool_pre_ping": True,
    }


# Create engine
engine = create_engine(settings.DATABASE_URL, echo=settings.DEBUG, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Statistics tracking
query_stats = {
    'total_queries': 0,
    'slow_queries': 0,
}
# Cursor events fire from the request threadpool
_stats_lock = threading.Lock()


@event.listens_for(engine, "connect")
def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores foreign keys unless asked per connection"""
    if engine.dialect.name == "sqlite":
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


@event.listens_for(engine, "before_cursor_execute")
def receive_before_cursor_execute(conn, cursor, statement, params, context, executemany):
    """Track query start time"""
    conn.info.setdefault('query_start_time', []).append(time.time())


@event.listens_for(engine, "after_cursor_execute")
def receive_after_cursor_execute(conn, cursor, statement, params, context, executemany):
    """Track query completion"""
    total_time = time.time() - conn.info['query_start_time'].pop()
    slow = total_time > SLOW_QUERY_SECONDS

    with _stats_lock:
        query_stats['total_queries'] += 1
        if slow:
            query_stats['slow_queries'] += 1

    if slow:
        logger.warning(f"⚠️ SLOW QUERY ({total_time:.3f}s): {statement[:100]}...")


def get_db():
    """Dependency for getting database session"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db():
    """
    Create database tables.
    Only for development - use migrations in production.
    """
    from classchat.models import Base

    Base.metadata.create_all(bind=engine)
    logger.info("✅ Database tables ready")


def drop_db():
    """
    Drop all database tables.
    WARNING: Use only in development/testing!
    """
    from classchat.models import Base

    Base.metadata.drop_all(bind=engine)


def get_query_stats():
    """Get query statistics"""
    with _stats_lock:
        return query_stats.copy()


def check_database_health() -> bool:
    """Check database connection"""
    try:
        with SessionLocal() as db:
            db.execute(text("SELECT 1")).fetchone()
        return True
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return False
