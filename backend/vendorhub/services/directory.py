from __future__ import annotations
"""Vendor directory: business-key lookups, onboarding and hierarchy traversal.

Traversals work on a single snapshot of the vendor table (one query per call) and walk
parent/child links iteratively with a visited set, so a corrupted parent chain cannot
loop forever.
"""
import logging
from collections import deque
from typing import Any, Dict, List, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from vendorhub import get_db
from vendorhub.constants.permissions import ALL_LEVELS, REGIONS, LEVEL_SUPER, LEVEL_REGIONAL, LEVEL_CITY
from vendorhub.errors import NotFound, InvalidArgument, InvalidHierarchy, InvalidScope, Conflict
from vendorhub.models.vendor import Vendor
from vendorhub.utils.fsm import TransitionValidator
from vendorhub.utils.validation import require_fields, coerce_int, validate_choice

log = logging.getLogger(__name__)

VENDOR_STATUS_FSM = TransitionValidator({
    Vendor.STATUS_ACTIVE: {Vendor.STATUS_INACTIVE, Vendor.STATUS_SUSPENDED},
    Vendor.STATUS_SUSPENDED: {Vendor.STATUS_ACTIVE, Vendor.STATUS_INACTIVE},
    Vendor.STATUS_INACTIVE: {Vendor.STATUS_ACTIVE},
})


# --- Lookups ---

def find_by_unique_id(unique_id: Optional[str]) -> Optional[Vendor]:
    if not unique_id:
        return None
    session = get_db()
    return session.execute(select(Vendor).where(Vendor.unique_id == unique_id)).scalar_one_or_none()


def get_vendor(unique_id: Optional[str]) -> Vendor:
    vendor = find_by_unique_id(unique_id)
    if vendor is None:
        raise NotFound(f'Vendor {unique_id} not found')
    return vendor


def find_children(parent_unique_id: str) -> List[Vendor]:
    session = get_db()
    return list(session.execute(
        select(Vendor).where(Vendor.parent_id == parent_unique_id).order_by(Vendor.id)
    ).scalars())


def find_by_level_and_region(level: int, region: Optional[str]) -> List[Vendor]:
    session = get_db()
    stmt = select(Vendor).where(Vendor.level == level)
    stmt = stmt.where(Vendor.region == region.upper()) if region else stmt.where(Vendor.region.is_(None))
    return list(session.execute(stmt.order_by(Vendor.id)).scalars())


# --- Onboarding ---

def _clean_region(region: Any) -> Optional[str]:
    if region in (None, ''):
        return None
    if not isinstance(region, str):
        raise InvalidArgument('region invalid')
    return validate_choice(region.upper(), REGIONS, 'region')


def validate_placement(level: int, region: Optional[str], city: Optional[str], parent: Optional[Vendor]) -> None:
    """Check a vendor's level and geography against its prospective parent."""
    if level == LEVEL_SUPER:
        if parent is not None:
            raise InvalidHierarchy('Super vendors cannot have a parent')
        return
    if parent is None:
        raise InvalidHierarchy('parent_id required below the Super level')
    if level <= parent.level:
        raise InvalidHierarchy('Vendor must be at a lower level than its parent')
    if parent.region and region != parent.region:
        raise InvalidScope('Vendor must be in the same region as its parent')
    if level >= LEVEL_CITY and parent.city and city != parent.city:
        raise InvalidScope('Vendor must be in the same city as its parent')


def create_vendor(data: Dict[str, Any], created_by: Optional[str] = None) -> Vendor:
    require_fields(data, 'unique_id', 'name', 'email', 'password', 'level')
    level = validate_choice(coerce_int(data['level'], 'level'), ALL_LEVELS, 'level')
    region = _clean_region(data.get('region'))
    city = data.get('city') or None
    status = validate_choice(data.get('status') or Vendor.STATUS_ACTIVE, Vendor.ALL_STATUSES, 'status')
    parent = None
    if data.get('parent_id'):
        parent = find_by_unique_id(data['parent_id'])
        if parent is None:
            raise NotFound(f"Parent vendor {data['parent_id']} not found")
    validate_placement(level, region, city, parent)

    session = get_db()
    dup = session.execute(
        select(Vendor).where((Vendor.unique_id == data['unique_id']) | (Vendor.email == data['email']))
    ).scalars().first()
    if dup:
        raise Conflict('vendor unique_id or email exists')
    vendor = Vendor(
        unique_id=data['unique_id'],
        name=data['name'],
        email=data['email'],
        phone=data.get('phone'),
        address=data.get('address'),
        level=level,
        region=region,
        city=city,
        locality=data.get('locality') or None,
        status=status,
        parent_id=parent.unique_id if parent else None,
    )
    vendor.set_password(data['password'])
    session.add(vendor)
    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise Conflict('vendor unique_id or email exists')
    log.info('Vendor %s onboarded at level %s under %s by %s', vendor.unique_id, level, vendor.parent_id, created_by)
    return vendor


def set_vendor_status(unique_id: str, status: str) -> Vendor:
    vendor = get_vendor(unique_id)
    validate_choice(status, Vendor.ALL_STATUSES, 'status')
    VENDOR_STATUS_FSM.assert_can_transition(vendor.status, status)
    vendor.status = status
    get_db().commit()
    log.info('Vendor %s status -> %s', unique_id, status)
    return vendor


# --- Hierarchy traversal ---

class HierarchySnapshot:
    """In-memory index of the vendor table for one traversal call."""

    def __init__(self, vendors: List[Vendor]):
        self.by_id: Dict[str, Vendor] = {v.unique_id: v for v in vendors}
        self.children: Dict[str, List[Vendor]] = {}
        for v in vendors:
            if v.parent_id:
                self.children.setdefault(v.parent_id, []).append(v)

    @classmethod
    def load(cls) -> 'HierarchySnapshot':
        session = get_db()
        return cls(list(session.execute(select(Vendor).order_by(Vendor.id)).scalars()))

    def require(self, unique_id: str) -> Vendor:
        vendor = self.by_id.get(unique_id)
        if vendor is None:
            raise NotFound(f'Vendor {unique_id} not found')
        return vendor

    def ancestors(self, unique_id: str) -> List[Vendor]:
        """Parent first, root last."""
        current = self.require(unique_id)
        seen = {current.unique_id}
        out: List[Vendor] = []
        while current.parent_id:
            if current.parent_id in seen:
                log.warning('Parent cycle detected at vendor %s', current.unique_id)
                break
            parent = self.by_id.get(current.parent_id)
            if parent is None:
                break
            seen.add(parent.unique_id)
            out.append(parent)
            current = parent
        return out

    def descendants(self, unique_id: str) -> List[Vendor]:
        """Breadth-first, excluding the starting vendor."""
        self.require(unique_id)
        seen = {unique_id}
        out: List[Vendor] = []
        queue = deque([unique_id])
        while queue:
            current = queue.popleft()
            for child in self.children.get(current, []):
                if child.unique_id in seen:
                    log.warning('Parent cycle detected at vendor %s', child.unique_id)
                    continue
                seen.add(child.unique_id)
                out.append(child)
                queue.append(child.unique_id)
        return out

    def tree(self, unique_id: str, serializer) -> Dict[str, Any]:
        root = self.require(unique_id)
        root_node = dict(serializer(root), children=[])
        seen = {unique_id}
        stack = [(root, root_node)]
        while stack:
            vendor, node = stack.pop()
            for child in self.children.get(vendor.unique_id, []):
                if child.unique_id in seen:
                    continue
                seen.add(child.unique_id)
                child_node = dict(serializer(child), children=[])
                node['children'].append(child_node)
                stack.append((child, child_node))
        return root_node


def get_ancestors(unique_id: str) -> List[Vendor]:
    return HierarchySnapshot.load().ancestors(unique_id)


def get_descendants(unique_id: str) -> List[Vendor]:
    return HierarchySnapshot.load().descendants(unique_id)


def get_hierarchy_tree(unique_id: str, serializer) -> Dict[str, Any]:
    return HierarchySnapshot.load().tree(unique_id, serializer)


def get_branch_vendors(unique_id: str) -> List[Vendor]:
    snapshot = HierarchySnapshot.load()
    return snapshot.ancestors(unique_id) + snapshot.descendants(unique_id)


def is_descendant(ancestor_id: str, unique_id: str) -> bool:
    """True if ``ancestor_id`` appears strictly above ``unique_id`` in the hierarchy."""
    snapshot = HierarchySnapshot.load()
    if unique_id not in snapshot.by_id:
        return False
    return any(v.unique_id == ancestor_id for v in snapshot.ancestors(unique_id))


def _first_at_level(level: int, **criteria) -> Optional[Vendor]:
    session = get_db()
    stmt = select(Vendor).where(Vendor.level == level)
    for column, value in criteria.items():
        stmt = stmt.where(getattr(Vendor, column) == value)
    return session.execute(stmt.order_by(Vendor.id)).scalars().first()


def get_vendors_by_region(region: str) -> List[Vendor]:
    regional = _first_at_level(LEVEL_REGIONAL, region=region.upper())
    if regional is None:
        return []
    return get_descendants(regional.unique_id)


def get_vendors_by_city(city: str) -> List[Vendor]:
    city_vendor = _first_at_level(LEVEL_CITY, city=city)
    if city_vendor is None:
        return []
    return get_descendants(city_vendor.unique_id)


def get_vendors_by_level_in_region(level: int, region: str) -> List[Vendor]:
    if level == LEVEL_REGIONAL:
        return find_by_level_and_region(LEVEL_REGIONAL, region)
    regional = _first_at_level(LEVEL_REGIONAL, region=region.upper())
    if regional is None:
        return []
    return [v for v in get_descendants(regional.unique_id) if v.level == level]
