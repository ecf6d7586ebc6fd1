from collections.abc import Iterable

from fastapi import HTTPException, status

from fundingsync.db.document_store import DocumentStore
from fundingsync.services.identity import is_admin


def require_roles(store: DocumentStore, uid: str, allowed_roles: Iterable[str]) -> None:
    if is_admin(store, uid, allowed_roles):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="Admin access required.",
    )
