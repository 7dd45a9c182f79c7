from __future__ import annotations
from flask import Blueprint, request, current_app
from flask_jwt_extended import jwt_required
from vendorhub.errors import Forbidden, InvalidArgument
from vendorhub.models.delegation import Delegation, DelegationAuditEntry
from vendorhub.services import delegation as engine
from vendorhub.services.permissions import validate_delegation_request
from vendorhub.services.policy import current_vendor_id
from vendorhub.utils.dates import isoformat, utcnow
from vendorhub.utils.listing import paginate_list, make_cached_list_response
from vendorhub.utils.validation import require_fields

delegations_bp = Blueprint('delegations', __name__)


@delegations_bp.post('')
@jwt_required()
def create_delegation():
    data = request.json or {}
    require_fields(data, 'delegate_id', 'delegation_type', 'start_date')
    delegator_id = current_vendor_id()
    validate_delegation_request(delegator_id, data['delegate_id'], data.get('delegated_permissions'),
                                delegation_type=data['delegation_type'])
    delegation = engine.create_delegation(
        delegator_id,
        data['delegate_id'],
        data['delegation_type'],
        data.get('delegated_permissions'),
        scope=data.get('delegation_scope'),
        conditions=data.get('conditions'),
        start_date=data['start_date'],
        end_date=data.get('end_date'),
        reject_duplicate_active=current_app.config.get('DELEGATION_REJECT_DUPLICATE_ACTIVE', False),
    )
    return _delegation_json(delegation), 201


@delegations_bp.post('/<delegation_id>/revoke')
@jwt_required()
def revoke(delegation_id):
    return _delegation_json(engine.revoke_delegation(delegation_id, current_vendor_id()))


@delegations_bp.put('/<delegation_id>/conditions')
@jwt_required()
def update_conditions(delegation_id):
    data = request.json or {}
    require_fields(data, 'conditions')
    return _delegation_json(engine.update_conditions(delegation_id, current_vendor_id(), data['conditions']))


@delegations_bp.get('/active')
@jwt_required()
def active():
    role = request.args.get('role', engine.ROLE_DELEGATE)
    now = utcnow()
    rows = [_delegation_json(d, now) for d in engine.query_active_delegations(current_vendor_id(), role, now)]
    rows, total, limit, offset = paginate_list(rows)
    return make_cached_list_response(rows, total, limit, offset)


@delegations_bp.get('/history')
@jwt_required()
def history():
    now = utcnow()
    rows = [_delegation_json(d, now) for d in engine.delegation_history(current_vendor_id(), request.args.get('type'))]
    rows, total, limit, offset = paginate_list(rows)
    return make_cached_list_response(rows, total, limit, offset)


@delegations_bp.get('/can-perform')
@jwt_required()
def can_perform():
    action = request.args.get('action')
    target = request.args.get('target_vendor_id')
    if not action or not target:
        raise InvalidArgument('action & target_vendor_id required')
    amount = request.args.get('amount')
    if amount is not None:
        try:
            amount = float(amount)
        except ValueError:
            raise InvalidArgument('amount must be a number')
    allowed = engine.can_perform_action(current_vendor_id(), action, target, amount=amount)
    return {'action': action, 'target_vendor_id': target, 'allowed': allowed}


@delegations_bp.get('/<delegation_id>')
@jwt_required()
def get_delegation(delegation_id):
    delegation = engine.get_delegation(delegation_id)
    if current_vendor_id() not in (delegation.delegator_id, delegation.delegate_id):
        raise Forbidden('Not a party to this delegation')
    body = _delegation_json(delegation)
    body['audit_log'] = [_audit_json(a) for a in delegation.audit_log]
    return body


def _audit_json(a: DelegationAuditEntry):
    return {
        'action': a.action,
        'performed_by': a.performed_by,
        'details': a.details,
        'created_at': isoformat(a.created_at),
    }


def _delegation_json(d: Delegation, now=None):
    return {
        'id': d.id,
        'delegator_id': d.delegator_id,
        'delegate_id': d.delegate_id,
        'delegation_type': d.delegation_type,
        'delegated_permissions': d.delegated_permissions,
        'delegation_scope': d.delegation_scope,
        'conditions': d.conditions,
        'start_date': isoformat(d.start_date),
        'end_date': isoformat(d.end_date),
        'status': d.status,
        'effective_status': d.effective_status(now),
        'created_at': isoformat(d.created_at),
    }
