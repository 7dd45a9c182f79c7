from __future__ import annotations
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from vendorhub.decorators.auth import require_permissions
from vendorhub.decorators.audit import audit_log
from vendorhub.errors import InvalidArgument
from vendorhub.models.authz import DefaultPermissionGrant, PermissionHistoryEntry
from vendorhub.services import permissions as resolver
from vendorhub.services.policy import current_vendor_id, assert_manages, assert_self_or_manages
from vendorhub.utils.dates import isoformat
from vendorhub.utils.validation import require_fields

perms_bp = Blueprint('permissions', __name__)


def _required_arg(name: str) -> str:
    value = request.args.get(name)
    if not value:
        raise InvalidArgument(f'{name} required')
    return value


@perms_bp.post('/default')
@require_permissions('vendorManagement.canManageSubVendors')
@audit_log('GRANT.ASSIGN', entity='DefaultPermissionGrant', entity_id_key='vendor_unique_id', meta_keys=['vendor_level'])
def assign_default():
    data = request.json or {}
    require_fields(data, 'vendor_unique_id')
    assert_manages(data['vendor_unique_id'])
    grant = resolver.assign_default_role(data['vendor_unique_id'], data.get('level'), assigned_by=current_vendor_id())
    return _grant_json(grant), 201


@perms_bp.get('/<unique_id>')
@jwt_required()
def get_permissions(unique_id: str):
    assert_self_or_manages(unique_id)
    return _grant_json(resolver.get_grant(unique_id), with_history=True)


@perms_bp.put('/<unique_id>')
@require_permissions('vendorManagement.canManageSubVendors')
@audit_log('GRANT.UPDATE', entity='DefaultPermissionGrant', entity_id_arg='unique_id',
           meta_builder=lambda data, args, kwargs: {'changes': [c['permission'] for c in data.get('changes', [])]})
def update_permissions(unique_id: str):
    assert_manages(unique_id)
    data = request.json or {}
    require_fields(data, 'granted_permissions')
    grant, changes = resolver.update_permissions(unique_id, current_vendor_id(), data['granted_permissions'])
    body = _grant_json(grant)
    body['changes'] = changes
    return body


@perms_bp.get('/<unique_id>/effective')
@jwt_required()
def effective(unique_id: str):
    assert_self_or_manages(unique_id)
    return resolver.get_effective_permissions(unique_id)


@perms_bp.get('/<unique_id>/check')
@jwt_required()
def check(unique_id: str):
    assert_self_or_manages(unique_id)
    permission = _required_arg('permission')
    return {'permission': permission, 'allowed': resolver.has_permission(unique_id, permission)}


@perms_bp.get('/<unique_id>/can-delegate')
@jwt_required()
def can_delegate(unique_id: str):
    assert_self_or_manages(unique_id)
    permission = _required_arg('permission')
    return {'permission': permission, 'can_delegate': resolver.can_delegate_permission(unique_id, permission)}


@perms_bp.post('/validate-delegation')
@jwt_required()
def validate_delegation():
    data = request.json or {}
    require_fields(data, 'delegate_id')
    resolver.validate_delegation_request(current_vendor_id(), data['delegate_id'], data.get('capabilities'))
    return {'valid': True}


def _history_json(h: PermissionHistoryEntry):
    return {
        'id': h.id,
        'granted_by': h.granted_by,
        'change_type': h.change_type,
        'permission': h.permission,
        'previous_value': h.previous_value,
        'new_value': h.new_value,
        'notes': h.notes,
        'created_at': isoformat(h.created_at),
    }


def _grant_json(g: DefaultPermissionGrant, with_history: bool = False):
    body = {
        'id': g.id,
        'vendor_unique_id': g.vendor_unique_id,
        'vendor_level': g.vendor_level,
        'granted_permissions': g.granted_permissions,
        'version': g.version,
        'updated_at': isoformat(g.updated_at),
    }
    if with_history:
        body['history'] = [_history_json(h) for h in g.history]
    return body
