from __future__ import annotations
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from vendorhub.decorators.auth import require_permissions
from vendorhub.decorators.audit import audit_log
from vendorhub.models.authz import Role
from vendorhub.services import roles as role_registry
from vendorhub.services.policy import assert_level
from vendorhub.utils.listing import paginate_list, make_cached_list_response
from vendorhub.utils.validation import coerce_int

roles_bp = Blueprint('roles', __name__)


@roles_bp.post('')
@require_permissions('vendorManagement.canManageSubVendors')
@audit_log('ROLE.CREATE', entity='Role', entity_id_key='id', meta_keys=['role_name', 'level'])
def create_role():
    assert_level(1)
    data = request.json or {}
    role = role_registry.create_role(
        data.get('role_name'),
        data.get('level'),
        permissions=data.get('permissions'),
        can_delegate=data.get('can_delegate', False),
        delegatable_permissions=data.get('delegatable_permissions'),
    )
    return _role_json(role), 201


@roles_bp.get('')
@jwt_required()
def list_roles():
    rows, total, limit, offset = paginate_list([_role_json(r) for r in role_registry.list_roles()])
    return make_cached_list_response(rows, total, limit, offset)


@roles_bp.get('/level/<level>')
@jwt_required()
def role_for_level(level):
    return _role_json(role_registry.get_role_for_level(coerce_int(level, 'level')))


def _role_json(r: Role):
    return {
        'id': r.id,
        'role_name': r.role_name,
        'level': r.level,
        'permissions': r.permissions,
        'can_delegate': r.can_delegate,
        'delegatable_permissions': r.delegatable_permissions,
    }
