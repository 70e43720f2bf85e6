from typing import Generator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from square_billing.core.config import settings

# SQLite needs this to share the engine with FastAPI's worker threads
_connect_args = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}

# One engine for the subscriptions table and anything the host app adds
engine = create_engine(
    settings.database_url,
    echo=settings.db_echo,
    connect_args=_connect_args,
    future=True,
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; SqlSubscriptionStore and the 404 lookup share it."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
