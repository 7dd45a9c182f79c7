from __future__ import annotations
from flask import Blueprint, request
from flask_jwt_extended import jwt_required
from vendorhub import get_db
from vendorhub.constants.permissions import ALL_LEVELS, REGIONS
from vendorhub.models.vendor import Vendor
from vendorhub.decorators.auth import require_permissions
from vendorhub.decorators.audit import audit_log
from vendorhub.services import directory
from vendorhub.services.policy import current_vendor_id, assert_self_or_manages, assert_manages
from vendorhub.utils.filters import apply_filters
from vendorhub.utils.listing import list_response, paginate_list, make_cached_list_response
from vendorhub.utils.sorting import apply_multi_sort
from vendorhub.utils.validation import require_fields

vendors_bp = Blueprint('vendors', __name__)


@vendors_bp.post('')
@require_permissions('vendorManagement.canCreateSubVendors')
@audit_log('VENDOR.CREATE', entity='Vendor', entity_id_key='unique_id', meta_keys=['level', 'parent_id', 'region', 'city'])
def create_vendor():
    data = dict(request.json or {})
    data.setdefault('parent_id', current_vendor_id())
    assert_self_or_manages(data['parent_id'])
    vendor = directory.create_vendor(data, created_by=current_vendor_id())
    return _vendor_json(vendor), 201


@vendors_bp.get('')
@require_permissions('vendorManagement.canViewSubVendors')
def list_vendors():
    session = get_db()
    # scoped to the caller's subtree
    subtree = [v.unique_id for v in directory.get_descendants(current_vendor_id())]
    q = session.query(Vendor).filter(Vendor.unique_id.in_(subtree))
    filter_specs = {
        'level': {'coerce': int, 'validate': lambda v: v in ALL_LEVELS, 'op': lambda qu, v: qu.filter(Vendor.level==v)},
        'region': {'coerce': str.upper, 'validate': lambda v: v in REGIONS, 'op': lambda qu, v: qu.filter(Vendor.region==v)},
        'city': {'op': lambda qu, v: qu.filter(Vendor.city==v)},
        'status': {'validate': lambda v: v in Vendor.ALL_STATUSES, 'op': lambda qu, v: qu.filter(Vendor.status==v)},
        'parent_id': {'op': lambda qu, v: qu.filter(Vendor.parent_id==v)},
        'name': {'op': lambda qu, v: qu.filter(Vendor.name.ilike(f'%{v}%'))},
    }
    q = apply_filters(q, filter_specs, request.args)
    allowed = {
        'name': Vendor.name,
        'level': Vendor.level,
        'status': Vendor.status,
        'unique_id': Vendor.unique_id,
        'id': Vendor.id
    }
    q = apply_multi_sort(q, request.args.get('sort'), allowed, Vendor.id)
    return list_response(q, _vendor_json)


@vendors_bp.get('/<unique_id>')
@jwt_required()
def get_vendor(unique_id: str):
    assert_self_or_manages(unique_id)
    return _vendor_json(directory.get_vendor(unique_id))


@vendors_bp.get('/<unique_id>/children')
@jwt_required()
def list_children(unique_id: str):
    assert_self_or_manages(unique_id)
    rows, total, limit, offset = paginate_list([_vendor_json(v) for v in directory.find_children(unique_id)])
    return make_cached_list_response(rows, total, limit, offset)


@vendors_bp.get('/<unique_id>/ancestors')
@jwt_required()
def list_ancestors(unique_id: str):
    assert_self_or_manages(unique_id)
    return {'data': [_vendor_json(v) for v in directory.get_ancestors(unique_id)]}


@vendors_bp.get('/<unique_id>/descendants')
@jwt_required()
def list_descendants(unique_id: str):
    assert_self_or_manages(unique_id)
    rows, total, limit, offset = paginate_list([_vendor_json(v) for v in directory.get_descendants(unique_id)])
    return make_cached_list_response(rows, total, limit, offset)


@vendors_bp.get('/<unique_id>/tree')
@jwt_required()
def hierarchy_tree(unique_id: str):
    assert_self_or_manages(unique_id)
    return directory.get_hierarchy_tree(unique_id, _vendor_json)


@vendors_bp.post('/<unique_id>/status')
@require_permissions('vendorManagement.canUpdateSubVendorDetails')
@audit_log('VENDOR.STATUS', entity='Vendor', entity_id_key='unique_id', meta_keys=['status'])
def set_status(unique_id: str):
    assert_manages(unique_id)
    data = request.json or {}
    require_fields(data, 'status')
    return _vendor_json(directory.set_vendor_status(unique_id, data['status']))


def _vendor_json(v: Vendor):
    return {
        'id': v.id,
        'unique_id': v.unique_id,
        'name': v.name,
        'email': v.email,
        'phone': v.phone,
        'address': v.address,
        'level': v.level,
        'region': v.region,
        'city': v.city,
        'locality': v.locality,
        'status': v.status,
        'parent_id': v.parent_id,
    }
