from flask import Blueprint, request, abort
from flask_jwt_extended import create_access_token, jwt_required, get_jwt_identity
from sqlalchemy import select
from vendorhub import get_db
from vendorhub.models.vendor import Vendor
from vendorhub.services.directory import get_vendor
from vendorhub.services.permissions import get_effective_permissions
from vendorhub.routes.vendors import _vendor_json

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/login')
def login():
    data = request.json or {}
    email = data.get('email'); password = data.get('password')
    if not email or not password:
        abort(400, description='email & password required')
    session = get_db()
    vendor = session.execute(select(Vendor).where(Vendor.email==email)).scalar_one_or_none()
    if not vendor or not vendor.verify_password(password):
        abort(401, description='invalid credentials')
    if vendor.status != Vendor.STATUS_ACTIVE:
        abort(403, description=f'vendor is {vendor.status.lower()}')
    eff = get_effective_permissions(vendor.unique_id)
    claims = {
        'perms': eff['all_permissions'],
        'level': vendor.level,
    }
    # JWT identity is the vendor business key
    token = create_access_token(identity=vendor.unique_id, additional_claims=claims)
    return {'access_token': token}


@auth_bp.get('/me')
@jwt_required()
def me():
    vendor = get_vendor(get_jwt_identity())
    eff = get_effective_permissions(vendor.unique_id)
    body = _vendor_json(vendor)
    body.update(eff)
    return body
