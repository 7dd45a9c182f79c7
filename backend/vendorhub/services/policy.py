from __future__ import annotations
from typing import Set
from flask_jwt_extended import get_jwt, get_jwt_identity
from vendorhub.errors import Forbidden
from vendorhub.services.directory import is_descendant, get_vendor


def current_permissions() -> Set[str]:
    claims = get_jwt()
    return set(claims.get('perms', []))


def current_vendor_id() -> str:
    return str(get_jwt_identity())


def manages(target_unique_id: str) -> bool:
    """Caller sits strictly above the target in the hierarchy."""
    return is_descendant(current_vendor_id(), target_unique_id)


def assert_manages(target_unique_id: str):
    get_vendor(target_unique_id)
    if not manages(target_unique_id):
        raise Forbidden('Vendor is outside your hierarchy')


def assert_self_or_manages(target_unique_id: str):
    get_vendor(target_unique_id)
    if current_vendor_id() == target_unique_id:
        return
    if not manages(target_unique_id):
        raise Forbidden('Vendor is outside your hierarchy')


def assert_level(*levels: int):
    claims = get_jwt()
    if claims.get('level') not in levels:
        raise Forbidden('Operation not allowed at your hierarchy level')
