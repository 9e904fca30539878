"""
Store-scoping helpers.

SECURITY INVARIANTS:
1. Every authenticated request has g.current_user set (see decorators.require_auth)
2. Store IDs from client input are validated with require_store_access()
3. SUPER_ADMIN users may act on any store; everyone else only on their own
"""

from flask import g
from ..extensions import db
from ..models import Store, User


class TenantAccessError(Exception):
    """Raised when a store is missing (404) or outside the caller's scope (403)."""

    def __init__(self, message: str, status_code: int = 403):
        super().__init__(message)
        self.status_code = status_code


def _current_user() -> User | None:
    return getattr(g, "current_user", None)


def can_access_store(user: User | None, store_id: int | None) -> bool:
    if user is None or store_id is None:
        return False
    if user.is_super_admin:
        return True
    return user.store_id == store_id


def require_store_access(store_id: int | None, user: User | None = None) -> Store:
    """
    Return the Store if the caller may act on it.

    Raises TenantAccessError (404) if the store does not exist and
    TenantAccessError (403) if it belongs to another tenant.
    """
    user = user or _current_user()
    if store_id is None:
        raise TenantAccessError("store_id required", status_code=400)
    store = db.session.get(Store, store_id)
    if store is None:
        raise TenantAccessError("Store not found", status_code=404)
    if not can_access_store(user, store.id):
        raise TenantAccessError("Access to this store is denied", status_code=403)
    return store


def resolve_store_id(requested: int | None, user: User | None = None) -> int:
    """Requested store, defaulting to the caller's own store; validated."""
    user = user or _current_user()
    if requested is None and user is not None:
        requested = user.store_id
    return require_store_access(requested, user).id


def accessible_store_ids(user: User | None = None) -> set[int] | None:
    """None means unrestricted (SUPER_ADMIN)."""
    user = user or _current_user()
    if user is None:
        return set()
    if user.is_super_admin:
        return None
    return {user.store_id} if user.store_id is not None else set()


def get_in_scope(model, obj_id, user: User | None = None):
    """
    Load a store-owned row by primary key, or None.

    Rows of stores outside the caller's scope are reported as missing.
    """
    user = user or _current_user()
    obj = db.session.get(model, obj_id)
    if obj is None or not can_access_store(user, obj.store_id):
        return None
    return obj
