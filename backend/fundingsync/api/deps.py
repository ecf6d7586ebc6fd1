from collections.abc import Generator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from fundingsync.core.config import get_settings
from fundingsync.core.security import require_roles
from fundingsync.db.document_store import DocumentStore
from fundingsync.db.session import SessionLocal, document_store


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_store() -> DocumentStore:
    return document_store


def get_caller_uid(x_user_id: str | None = Header(default=None)) -> str:
    uid = (x_user_id or "").strip()
    if not uid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
        )
    return uid


def get_admin_uid(
    uid: str = Depends(get_caller_uid),
    store: DocumentStore = Depends(get_store),
) -> str:
    require_roles(store, uid, get_settings().admin_role_set)
    return uid
