from __future__ import annotations
"""Delegation engine: validated, audited grants of capabilities to subordinate vendors.

Lifecycle:
    ACTIVE -> REVOKED   (terminal, explicit revoke by the delegator)
    ACTIVE -> EXPIRED   (derived at read time once end_date has passed, never written)

Every "active" read goes through ``Delegation.is_active``/``active_clause`` so stored
status alone is never trusted for a delegation that has run past its end date.
"""
import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Set

from sqlalchemy import select, or_, and_

from vendorhub import get_db
from vendorhub.constants.permissions import (
    LEVEL_REGIONAL, LEVEL_CITY, PERMISSION_MODULES, REGIONS, split_capability_path,
)
from vendorhub.errors import NotFound, InvalidHierarchy, InvalidScope, InvalidArgument, Forbidden, Conflict
from vendorhub.models.delegation import Delegation, DelegationAuditEntry
from vendorhub.models.vendor import Vendor
from vendorhub.services.directory import find_by_unique_id
from vendorhub.utils.dates import parse_datetime, utcnow
from vendorhub.utils.fsm import TransitionValidator
from vendorhub.utils.validation import string_list, optional_bool

log = logging.getLogger(__name__)

DELEGATION_FSM = TransitionValidator({
    Delegation.STATUS_ACTIVE: {Delegation.STATUS_REVOKED},
    Delegation.STATUS_REVOKED: set(),
    Delegation.STATUS_EXPIRED: set(),
}, error=Conflict)

ROLE_DELEGATOR = 'delegator'
ROLE_DELEGATE = 'delegate'

DIRECTION_GIVEN = 'given'
DIRECTION_RECEIVED = 'received'

CONDITION_DEFAULTS: Dict[str, Any] = {
    'allowed_local_vendors': [],
    'allowed_regions': [],
    'allowed_cities': [],
    'max_amount': None,
    'requires_approval': False,
    'time_limit': None,
    'notification_required': False,
}

SCOPE_KEYS = ('regions', 'cities', 'localities', 'modules')


# --- Validation helpers ---

def validate_hierarchy(delegator: Vendor, delegate: Vendor) -> None:
    """Level ordering and geographic containment between delegator and delegate."""
    if delegate.level <= delegator.level:
        raise InvalidHierarchy('Delegate must be at a lower level than delegator')
    if delegator.level == LEVEL_REGIONAL and delegate.region != delegator.region:
        raise InvalidScope('Delegate must be in the same region')
    if delegator.level == LEVEL_CITY and delegate.city != delegator.city:
        raise InvalidScope('Delegate must be in the same city')


def validate_delegation_type(delegation_type: Any) -> str:
    if delegation_type not in Delegation.ALL_TYPES:
        raise InvalidArgument(f"delegation_type must be one of {', '.join(Delegation.ALL_TYPES)}")
    return delegation_type


def resolve_pair(delegator_id: Optional[str], delegate_id: Optional[str]):
    delegator = find_by_unique_id(delegator_id)
    delegate = find_by_unique_id(delegate_id)
    if delegator is None or delegate is None:
        raise NotFound('Invalid vendor IDs')
    return delegator, delegate


def _regions(value: Any, field_name: str) -> List[str]:
    regions = [r.upper() for r in string_list(value, field_name)]
    unknown = [r for r in regions if r not in REGIONS]
    if unknown:
        raise InvalidArgument(f"{field_name} contains unknown regions {unknown}")
    return regions


def _optional_number(value: Any, field_name: str, integral: bool = False):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidArgument(f"{field_name} must be a number")
    if integral and not isinstance(value, int):
        raise InvalidArgument(f"{field_name} must be an integer")
    if value < 0:
        raise InvalidArgument(f"{field_name} must not be negative")
    return value


def normalize_conditions(raw: Optional[Dict[str, Any]], *, partial: bool = False) -> Dict[str, Any]:
    """Validate a conditions object. ``partial`` keeps only the provided keys (for merges)."""
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidArgument('conditions must be an object')
    unknown = sorted(set(raw) - set(CONDITION_DEFAULTS))
    if unknown:
        raise InvalidArgument(f"Unknown condition keys: {unknown}")
    out: Dict[str, Any] = {} if partial else dict(CONDITION_DEFAULTS)
    for key, value in raw.items():
        if key == 'allowed_regions':
            out[key] = _regions(value, key)
        elif key in ('allowed_local_vendors', 'allowed_cities'):
            out[key] = string_list(value, key)
        elif key == 'max_amount':
            out[key] = _optional_number(value, key)
        elif key == 'time_limit':
            out[key] = _optional_number(value, key, integral=True)
        else:
            out[key] = bool(optional_bool(value, key))
    return out


def normalize_scope(raw: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidArgument('delegation_scope must be an object')
    unknown = sorted(set(raw) - set(SCOPE_KEYS))
    if unknown:
        raise InvalidArgument(f"Unknown delegation_scope keys: {unknown}")
    scope = {
        'regions': _regions(raw.get('regions'), 'delegation_scope.regions'),
        'cities': string_list(raw.get('cities'), 'delegation_scope.cities'),
        'localities': string_list(raw.get('localities'), 'delegation_scope.localities'),
        'modules': string_list(raw.get('modules'), 'delegation_scope.modules'),
    }
    bad_modules = [m for m in scope['modules'] if m not in PERMISSION_MODULES]
    if bad_modules:
        raise InvalidArgument(f"delegation_scope.modules contains unknown modules {bad_modules}")
    return scope


def normalize_permission_list(raw: Any) -> List[str]:
    paths = string_list(raw, 'delegated_permissions')
    if not paths:
        raise InvalidArgument('delegated_permissions required')
    out: List[str] = []
    for path in paths:
        split_capability_path(path)
        if path not in out:
            out.append(path)
    return out


def _resolve_dates(delegation_type: str, start_raw: Any, end_raw: Any):
    start = parse_datetime(start_raw, 'start_date')
    if start is None:
        raise InvalidArgument('start_date required')
    end = parse_datetime(end_raw, 'end_date')
    if delegation_type == Delegation.TYPE_TEMPORARY and end is None:
        raise InvalidArgument('end_date is required for TEMPORARY delegations')
    if delegation_type == Delegation.TYPE_PERMANENT and end is not None:
        raise InvalidArgument('PERMANENT delegations cannot have an end_date')
    if end is not None and end <= start:
        raise InvalidArgument('end_date must be after start_date')
    return start, end


def _audit(delegation: Delegation, action: str, performed_by: str, details: str) -> None:
    delegation.audit_log.append(DelegationAuditEntry(action=action, performed_by=performed_by, details=details))


# --- Commands ---

def create_delegation(delegator_id: str, delegate_id: str, delegation_type: Any, delegated_permissions: Any,
                      scope: Optional[Dict[str, Any]] = None, conditions: Optional[Dict[str, Any]] = None,
                      start_date: Any = None, end_date: Any = None, *,
                      reject_duplicate_active: bool = False, now: Optional[datetime] = None) -> Delegation:
    now = now or utcnow()
    delegator, delegate = resolve_pair(delegator_id, delegate_id)
    validate_hierarchy(delegator, delegate)
    validate_delegation_type(delegation_type)
    start, end = _resolve_dates(delegation_type, start_date, end_date)
    permissions = normalize_permission_list(delegated_permissions)
    clean_conditions = normalize_conditions(conditions)
    clean_scope = normalize_scope(scope)
    if clean_scope and clean_scope['modules']:
        outside = [p for p in permissions if p.split('.', 1)[0] not in clean_scope['modules']]
        if outside:
            raise InvalidScope(f"Delegated permissions outside delegation scope: {outside}")

    session = get_db()
    # Read-then-write: two concurrent creations for the same pair can both pass this check.
    existing = [
        d for d in session.execute(select(Delegation).where(
            Delegation.delegator_id == delegator.unique_id,
            Delegation.delegate_id == delegate.unique_id,
            Delegation.status == Delegation.STATUS_ACTIVE,
        )).scalars()
        if d.is_active(now)
    ]
    if existing:
        if reject_duplicate_active:
            raise Conflict('An active delegation already exists between these vendors')
        log.warning('Delegation %s -> %s created alongside active delegation %s',
                    delegator.unique_id, delegate.unique_id, existing[0].id)

    delegation = Delegation(
        delegator_id=delegator.unique_id,
        delegate_id=delegate.unique_id,
        delegation_type=delegation_type,
        delegated_permissions=permissions,
        delegation_scope=clean_scope,
        conditions=clean_conditions,
        start_date=start,
        end_date=end,
        status=Delegation.STATUS_ACTIVE,
    )
    _audit(delegation, DelegationAuditEntry.ACTION_CREATED, delegator.unique_id,
           f"Delegation created with {len(permissions)} permission(s)")
    session.add(delegation)
    session.commit()
    log.info('Delegation %s created: %s -> %s %s', delegation.id, delegator.unique_id, delegate.unique_id, permissions)
    return delegation


def get_delegation(delegation_id: Any) -> Delegation:
    session = get_db()
    try:
        key = int(delegation_id)
    except (TypeError, ValueError):
        raise NotFound('Delegation not found')
    delegation = session.get(Delegation, key)
    if delegation is None:
        raise NotFound('Delegation not found')
    return delegation


def _owned(delegation_id: Any, requesting_delegator_id: Optional[str], verb: str) -> Delegation:
    delegation = get_delegation(delegation_id)
    if delegation.delegator_id != requesting_delegator_id:
        raise Forbidden(f'Only the delegator can {verb}')
    return delegation


def revoke_delegation(delegation_id: Any, requesting_delegator_id: Optional[str]) -> Delegation:
    delegation = _owned(delegation_id, requesting_delegator_id, 'revoke the delegation')
    DELEGATION_FSM.assert_can_transition(delegation.status, Delegation.STATUS_REVOKED)
    delegation.status = Delegation.STATUS_REVOKED
    _audit(delegation, DelegationAuditEntry.ACTION_REVOKED, requesting_delegator_id, 'Delegation revoked by delegator')
    get_db().commit()
    log.info('Delegation %s revoked by %s', delegation.id, requesting_delegator_id)
    return delegation


def update_conditions(delegation_id: Any, requesting_delegator_id: Optional[str], new_conditions: Optional[Dict[str, Any]]) -> Delegation:
    delegation = _owned(delegation_id, requesting_delegator_id, 'update delegation conditions')
    changes = normalize_conditions(new_conditions, partial=True)
    # reassign so the JSON column is flagged dirty
    delegation.conditions = {**(delegation.conditions or {}), **changes}
    _audit(delegation, DelegationAuditEntry.ACTION_CONDITIONS_UPDATED, requesting_delegator_id,
           f"Delegation conditions updated: {', '.join(sorted(changes)) or 'no keys'}")
    get_db().commit()
    return delegation


# --- Queries ---

def active_clause(now: datetime):
    """SQL counterpart of Delegation.is_active."""
    return and_(
        Delegation.status == Delegation.STATUS_ACTIVE,
        or_(Delegation.end_date.is_(None), Delegation.end_date > now),
    )


def query_active_delegations(vendor_id: str, role: str, now: Optional[datetime] = None) -> List[Delegation]:
    now = now or utcnow()
    if role == ROLE_DELEGATOR:
        column = Delegation.delegator_id
    elif role == ROLE_DELEGATE:
        column = Delegation.delegate_id
    else:
        raise InvalidArgument('role must be either "delegator" or "delegate"')
    session = get_db()
    return list(session.execute(
        select(Delegation).where(column == vendor_id, active_clause(now)).order_by(Delegation.id)
    ).scalars())


def delegation_history(vendor_id: str, direction: Optional[str] = None) -> List[Delegation]:
    """Every delegation the vendor gave and/or received regardless of status, newest first."""
    if direction == DIRECTION_GIVEN:
        clause = Delegation.delegator_id == vendor_id
    elif direction == DIRECTION_RECEIVED:
        clause = Delegation.delegate_id == vendor_id
    elif direction is None:
        clause = or_(Delegation.delegator_id == vendor_id, Delegation.delegate_id == vendor_id)
    else:
        raise InvalidArgument('type must be "given" or "received"')
    session = get_db()
    return list(session.execute(select(Delegation).where(clause).order_by(Delegation.id.desc())).scalars())


def delegated_capabilities(vendor_id: str, now: Optional[datetime] = None) -> Set[str]:
    """Union of delegated capability paths across the vendor's active received delegations."""
    merged: Set[str] = set()
    for delegation in query_active_delegations(vendor_id, ROLE_DELEGATE, now):
        merged.update(delegation.delegated_permissions or [])
    return merged


def _listed(values: Optional[Iterable[str]]) -> List[str]:
    return list(values or [])


def _passes_filters(delegation: Delegation, target: Vendor, amount: Optional[float]) -> bool:
    conditions = delegation.conditions or {}
    allowed_vendors = _listed(conditions.get('allowed_local_vendors'))
    if allowed_vendors and target.unique_id not in allowed_vendors:
        return False
    allowed_regions = _listed(conditions.get('allowed_regions'))
    if allowed_regions and target.region not in allowed_regions:
        return False
    allowed_cities = _listed(conditions.get('allowed_cities'))
    if allowed_cities and target.city not in allowed_cities:
        return False
    scope = delegation.delegation_scope or {}
    if scope.get('regions') and target.region not in scope['regions']:
        return False
    if scope.get('cities') and target.city not in scope['cities']:
        return False
    max_amount = conditions.get('max_amount')
    if amount is not None and max_amount is not None and amount > max_amount:
        return False
    return True


def can_perform_action(delegate_id: str, action: str, target_vendor_id: str,
                       amount: Optional[float] = None, now: Optional[datetime] = None) -> bool:
    """Any-match-wins: allowed as soon as one active delegation covers the action and target."""
    split_capability_path(action)
    target: Optional[Vendor] = None
    for delegation in query_active_delegations(delegate_id, ROLE_DELEGATE, now):
        if action not in (delegation.delegated_permissions or []):
            continue
        if target is None:
            target = find_by_unique_id(target_vendor_id)
            if target is None:
                raise NotFound('Target vendor not found')
        if _passes_filters(delegation, target, amount):
            return True
    return False
