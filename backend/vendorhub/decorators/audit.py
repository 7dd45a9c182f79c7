from __future__ import annotations
"""Activity audit decorator for mutating route handlers.

Usage:

@audit_log('VENDOR.CREATE', entity='Vendor', entity_id_key='unique_id', meta_keys=['level', 'parent_id'])
def create_vendor():
    ... return _vendor_json(vendor), 201

Parameters:
  action: required audit action code (e.g. GRANT.UPDATE)
  entity: optional entity label (Vendor, Role, DefaultPermissionGrant)
  entity_id_key: key in the returned JSON object whose value becomes entity_id.
  entity_id_arg: name of the path parameter to use for entity_id (fallback if entity_id_key absent).
  meta_keys: keys projected from the returned JSON into meta (shallow copy).
  meta_builder: callable (data, args, kwargs) -> dict; overrides meta_keys.

Only successful handlers are audited: an exception raised by the handler propagates
to the application error handler and nothing is recorded.
"""
import logging
from functools import wraps
from typing import Any, Callable, Iterable, Optional

from sqlalchemy.exc import SQLAlchemyError

from vendorhub import get_db
from vendorhub.services.audit import add_audit

log = logging.getLogger(__name__)


def _extract_payload(rv: Any):
    """Flask views return dict, (dict, status) or (dict, status, headers)."""
    if isinstance(rv, tuple) and rv:
        return rv[0]
    return rv


def audit_log(
    action: str,
    *,
    entity: Optional[str] = None,
    entity_id_key: Optional[str] = None,
    entity_id_arg: Optional[str] = None,
    meta_keys: Optional[Iterable[str]] = None,
    meta_builder: Optional[Callable[[dict, tuple, dict], dict]] = None,
):
    def outer(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            rv = fn(*args, **kwargs)
            data = _extract_payload(rv)
            if not isinstance(data, dict):
                data = {}
            entity_id = None
            if entity_id_key and entity_id_key in data:
                entity_id = data.get(entity_id_key)
            elif entity_id_arg and entity_id_arg in kwargs:
                entity_id = kwargs.get(entity_id_arg)
            if meta_builder:
                meta = meta_builder(data, args, kwargs)
            else:
                meta = {k: data.get(k) for k in (meta_keys or ()) if k in data}
            session = get_db()
            try:
                add_audit(action, entity, entity_id, meta)
                session.commit()
            except SQLAlchemyError:
                # the handler's own work is already committed; keep the response
                session.rollback()
                log.exception('Failed to record audit entry %s', action)
            return rv
        return wrapper
    return outer
