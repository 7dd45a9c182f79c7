from __future__ import annotations
"""Permission resolver: default role grants, their change history, and effective permissions.

Effective permissions = true-valued paths of the vendor's grant matrix
                      ∪ delegated paths of its currently active received delegations.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from vendorhub import get_db
from vendorhub.constants.permissions import (
    PERMISSION_MODULES, copy_matrix, flatten_matrix, normalize_matrix, split_capability_path,
)
from vendorhub.errors import NotFound, Conflict, InvalidArgument, PermissionDenied
from vendorhub.models.authz import DefaultPermissionGrant, PermissionHistoryEntry
from vendorhub.services import roles as role_registry
from vendorhub.services.delegation import (
    delegated_capabilities, resolve_pair, validate_delegation_type, validate_hierarchy,
)
from vendorhub.services.directory import get_vendor
from vendorhub.utils.validation import coerce_int, string_list

log = logging.getLogger(__name__)


def find_grant(vendor_unique_id: str) -> Optional[DefaultPermissionGrant]:
    session = get_db()
    return session.execute(
        select(DefaultPermissionGrant).where(DefaultPermissionGrant.vendor_unique_id == vendor_unique_id)
    ).scalar_one_or_none()


def get_grant(vendor_unique_id: str) -> DefaultPermissionGrant:
    grant = find_grant(vendor_unique_id)
    if grant is None:
        raise NotFound(f'No permissions found for vendor {vendor_unique_id}')
    return grant


def assign_default_role(vendor_unique_id: str, level: Any = None, assigned_by: Optional[str] = None) -> DefaultPermissionGrant:
    vendor = get_vendor(vendor_unique_id)
    if find_grant(vendor.unique_id) is not None:
        raise Conflict('Default permissions already set for this vendor')
    level = vendor.level if level is None else coerce_int(level, 'level')
    if level != vendor.level:
        raise InvalidArgument(f'level {level} does not match vendor level {vendor.level}')
    role = role_registry.get_role_for_level(level)

    grant = DefaultPermissionGrant(
        vendor_unique_id=vendor.unique_id,
        vendor_level=level,
        granted_permissions=copy_matrix(role.permissions),
    )
    grant.history.append(PermissionHistoryEntry(
        granted_by=assigned_by or vendor.unique_id,
        change_type=PermissionHistoryEntry.CHANGE_DEFAULT,
        permission='ALL',
        previous_value=False,
        new_value=True,
        notes=f'Initial permissions set from role {role.role_name}',
    ))
    session = get_db()
    session.add(grant)
    try:
        session.commit()
    except IntegrityError:
        # lost the race against a concurrent assignment for the same vendor
        session.rollback()
        raise Conflict('Default permissions already set for this vendor')
    log.info('Default role %s assigned to %s', role.role_name, vendor.unique_id)
    return grant


def update_permissions(vendor_unique_id: str, changed_by: str, new_granted_permissions: Dict[str, Any]) -> Tuple[DefaultPermissionGrant, List[Dict[str, Any]]]:
    """Apply only the capabilities whose value differs; one history entry per change."""
    if not changed_by:
        raise InvalidArgument('changed_by required')
    requested = normalize_matrix(new_granted_permissions, fill=False)
    grant = get_grant(vendor_unique_id)

    matrix = copy_matrix(grant.granted_permissions)
    changes: List[Dict[str, Any]] = []
    # history follows the declared module/capability order, not the request key order
    for module, capabilities in PERMISSION_MODULES.items():
        caps = requested.get(module)
        if not caps:
            continue
        current = matrix.setdefault(module, {})
        for cap in capabilities:
            if cap not in caps:
                continue
            new_value = caps[cap]
            previous = bool(current.get(cap, False))
            if previous == new_value:
                continue
            current[cap] = new_value
            changes.append({
                'permission': f'{module}.{cap}',
                'previous_value': previous,
                'new_value': new_value,
                'granted_by': changed_by,
                'notes': f'Changed from {str(previous).lower()} to {str(new_value).lower()}',
            })
    if not changes:
        return grant, changes

    grant.granted_permissions = matrix
    for change in changes:
        grant.history.append(PermissionHistoryEntry(
            change_type=PermissionHistoryEntry.CHANGE_GRANTED if change['new_value'] else PermissionHistoryEntry.CHANGE_REVOKED,
            **change,
        ))
    session = get_db()
    try:
        session.commit()
    except StaleDataError:
        # version check failed: another request updated this grant first
        session.rollback()
        raise Conflict('Permissions were modified concurrently; reload and retry')
    log.info('Permissions of %s updated by %s: %d change(s)', vendor_unique_id, changed_by, len(changes))
    return grant, changes


def get_effective_permissions(vendor_unique_id: str, now: Optional[datetime] = None) -> Dict[str, List[str]]:
    vendor = get_vendor(vendor_unique_id)
    grant = find_grant(vendor.unique_id)
    role_permissions = flatten_matrix(grant.granted_permissions) if grant else set()
    delegated = delegated_capabilities(vendor.unique_id, now)
    return {
        'role_permissions': sorted(role_permissions),
        'delegated_permissions': sorted(delegated),
        'all_permissions': sorted(role_permissions | delegated),
    }


def has_permission(vendor_unique_id: str, capability_path: str, now: Optional[datetime] = None) -> bool:
    split_capability_path(capability_path)
    return capability_path in get_effective_permissions(vendor_unique_id, now)['all_permissions']


def can_delegate_permission(vendor_unique_id: str, capability_path: str) -> bool:
    module, cap = split_capability_path(capability_path)
    vendor = get_vendor(vendor_unique_id)
    role = role_registry.find_by_level(vendor.level)
    if role is None or not role.can_delegate:
        return False
    return bool((role.delegatable_permissions or {}).get(module, {}).get(cap))


def validate_delegation_request(delegator_id: str, delegate_id: str, capability_paths: Any,
                                delegation_type: Any = None) -> bool:
    delegator, delegate = resolve_pair(delegator_id, delegate_id)
    validate_hierarchy(delegator, delegate)
    if delegation_type is not None:
        validate_delegation_type(delegation_type)
    paths = string_list(capability_paths, 'capabilities')
    if not paths:
        raise InvalidArgument('capabilities required')
    for path in paths:
        if not can_delegate_permission(delegator.unique_id, path):
            raise PermissionDenied(f'Permission {path} cannot be delegated by {delegator.unique_id}')
    return True
