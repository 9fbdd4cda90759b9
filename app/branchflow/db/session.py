import time

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from app.branchflow.core.config import settings
from app.branchflow.core.db_timing import current_db_time_ms, record_query_time


def build_engine(database_url: str):
    is_sqlite = database_url.startswith("sqlite")
    return create_engine(
        database_url,
        future=True,
        pool_pre_ping=not is_sqlite,
        connect_args={"check_same_thread": False} if is_sqlite else {},
    )


engine = build_engine(settings.DATABASE_URL)


@event.listens_for(engine, "before_cursor_execute")
def _start_query_timer(conn, cursor, statement, parameters, context, executemany):
    if current_db_time_ms() is not None:
        conn.info.setdefault("query_started", []).append(time.perf_counter())


@event.listens_for(engine, "after_cursor_execute")
def _stop_query_timer(conn, cursor, statement, parameters, context, executemany):
    started = conn.info.get("query_started")
    if started:
        record_query_time((time.perf_counter() - started.pop()) * 1000)


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
