from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from vendorhub import get_db
from vendorhub.constants.permissions import ALL_LEVELS, DELEGATABLE_MODULES, normalize_matrix
from vendorhub.errors import NotFound, InvalidArgument, Conflict
from vendorhub.models.authz import Role
from vendorhub.utils.validation import coerce_int, validate_choice, optional_bool

log = logging.getLogger(__name__)


def find_by_level(level: int) -> Optional[Role]:
    session = get_db()
    return session.execute(select(Role).where(Role.level == level).order_by(Role.id)).scalars().first()


def get_role_for_level(level: int) -> Role:
    role = find_by_level(level)
    if role is None:
        raise NotFound(f'No role found for level {level}')
    return role


def list_roles() -> List[Role]:
    session = get_db()
    return list(session.execute(select(Role).order_by(Role.level, Role.id)).scalars())


def create_role(role_name: str, level: Any, permissions: Optional[Dict[str, Any]] = None,
                can_delegate: Optional[bool] = False, delegatable_permissions: Optional[Dict[str, Any]] = None) -> Role:
    if not role_name or not isinstance(role_name, str):
        raise InvalidArgument('role_name required')
    level = validate_choice(coerce_int(level, 'level'), ALL_LEVELS, 'level')
    can_delegate = bool(optional_bool(can_delegate, 'can_delegate'))
    role = Role(
        role_name=role_name,
        level=level,
        permissions=normalize_matrix(permissions),
        can_delegate=can_delegate,
        delegatable_permissions=normalize_matrix(delegatable_permissions, DELEGATABLE_MODULES),
    )
    session = get_db()
    if session.execute(select(Role).where(Role.role_name == role_name)).scalar_one_or_none():
        raise Conflict('Role name must be unique')
    session.add(role)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict('Role name must be unique')
    log.info('Role %s created for level %s', role_name, level)
    return role
