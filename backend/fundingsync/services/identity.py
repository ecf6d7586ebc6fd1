from __future__ import annotations

from collections.abc import Iterable

from fundingsync.db.document_store import DocumentStore
from fundingsync.models.collections import USERS
from fundingsync.models.enums import AppRole


def get_user_role(store: DocumentStore, uid: str) -> str:
    """Return the caller's role, lower-cased; unknown users are plain users."""
    if not uid:
        return AppRole.user.value
    snapshot = store.get(USERS, uid)
    role = str(snapshot.get("role") or "").strip().lower()
    return role or AppRole.user.value


def is_admin(store: DocumentStore, uid: str, admin_roles: Iterable[str]) -> bool:
    return get_user_role(store, uid) in {role.lower() for role in admin_roles}
