from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from fundingsync.core.config import get_settings
from fundingsync.db.document_store import DocumentStore


settings = get_settings()

# Keep the pool small; triggers and admin calls are short-lived.
engine = create_engine(
    settings.database_url,
    future=True,
    pool_pre_ping=True,
    pool_size=5,
    max_overflow=5,
    pool_recycle=300,
)

SessionLocal = sessionmaker(
    bind=engine,
    autoflush=False,
    autocommit=False,
    expire_on_commit=False,
)

document_store = DocumentStore(
    SessionLocal,
    max_delivery_attempts=settings.change_delivery_max_attempts,
)
