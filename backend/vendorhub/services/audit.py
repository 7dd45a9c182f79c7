from __future__ import annotations
from typing import Any, Dict, Optional
from flask_jwt_extended import get_jwt_identity
from vendorhub import get_db
from vendorhub.models.audit import AuditLog

SYSTEM_ACTOR = 'SYSTEM'


def current_actor() -> str:
    """Vendor business key of the authenticated caller, or SYSTEM outside a request with a token."""
    try:
        ident = get_jwt_identity()
    except RuntimeError:
        # no request / JWT context (seed scripts, direct service calls)
        return SYSTEM_ACTOR
    return str(ident) if ident is not None else SYSTEM_ACTOR


def add_audit(action: str, entity: Optional[str] = None, entity_id: Optional[str] = None, meta: Optional[Dict[str, Any]] = None, actor: Optional[str] = None):
    """Persist an activity audit entry within the current DB session.

    Parameters:
      action: short action code e.g. VENDOR.CREATE, GRANT.UPDATE, ROLE.CREATE
      entity: optional entity name (Vendor, Role, DefaultPermissionGrant)
      entity_id: optional business key or primary key
      meta: additional JSON-safe dictionary (will be shallow copied)
      actor: explicit actor; defaults to the JWT identity
    """
    session = get_db()
    log = AuditLog(
        actor_vendor_id=actor or current_actor(),
        action=action,
        entity=entity,
        entity_id=str(entity_id) if entity_id is not None else None,
        meta=dict(meta or {}),
    )
    session.add(log)
    # No commit here; caller's transaction boundary controls durability.
    return log
