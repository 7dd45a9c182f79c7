from datetime import datetime
import pytest
from vendorhub.errors import Conflict, Forbidden, InvalidArgument, InvalidHierarchy, InvalidScope, NotFound
from vendorhub.models.delegation import Delegation, DelegationAuditEntry, effective_status
from vendorhub.services import delegation as engine
from tests.test_utils_seed import seed_hierarchy

JAN_1 = datetime(2024, 1, 1)
JAN_15 = datetime(2024, 1, 15)
JAN_31 = datetime(2024, 1, 31)
FEB_1 = datetime(2024, 2, 1)

BOOK = 'bookingManagement.canCreateBookings'
FLEET = 'fleetManagement.canViewFleet'


def _temporary(delegator='REG-NORTH', delegate='CITY-DEL', perms=(BOOK,), **kw):
    kw.setdefault('start_date', JAN_1)
    kw.setdefault('end_date', JAN_31)
    kw.setdefault('now', JAN_15)
    return engine.create_delegation(delegator, delegate, 'TEMPORARY', list(perms), **kw)


def test_effective_status_is_derived():
    assert effective_status('ACTIVE', None, FEB_1) == 'ACTIVE'
    assert effective_status('ACTIVE', JAN_31, JAN_15) == 'ACTIVE'
    assert effective_status('ACTIVE', JAN_31, JAN_31) == 'EXPIRED'
    assert effective_status('REVOKED', JAN_31, FEB_1) == 'REVOKED'


def test_create_delegation_persists_with_audit_entry():
    seed_hierarchy()
    d = _temporary(perms=[BOOK, BOOK, FLEET], conditions={'max_amount': 500})
    assert d.id is not None
    assert d.status == Delegation.STATUS_ACTIVE
    assert d.delegated_permissions == [BOOK, FLEET]
    assert d.conditions['max_amount'] == 500
    assert d.conditions['allowed_cities'] == []
    assert [(a.action, a.performed_by) for a in d.audit_log] == [(DelegationAuditEntry.ACTION_CREATED, 'REG-NORTH')]
    # the stored row never changes on expiry
    assert d.effective_status(FEB_1) == 'EXPIRED'
    assert d.status == 'ACTIVE'


def test_create_delegation_hierarchy_and_geography():
    seed_hierarchy()
    with pytest.raises(NotFound):
        _temporary(delegate='GHOST')
    with pytest.raises(InvalidHierarchy):
        _temporary(delegator='CITY-DEL', delegate='REG-NORTH')
    with pytest.raises(InvalidHierarchy):
        _temporary(delegator='REG-NORTH', delegate='REG-SOUTH')
    with pytest.raises(InvalidScope):
        _temporary(delegator='REG-NORTH', delegate='CITY-BLR')
    with pytest.raises(InvalidScope):
        _temporary(delegator='CITY-DEL', delegate='LOC-BLR-1')
    # super vendors are not geographically constrained
    assert _temporary(delegator='SUP1', delegate='LOC-BLR-1').delegate_id == 'LOC-BLR-1'


def test_create_delegation_types_and_dates():
    seed_hierarchy()
    with pytest.raises(InvalidArgument):
        engine.create_delegation('REG-NORTH', 'CITY-DEL', 'FOREVER', [BOOK], start_date=JAN_1, now=JAN_15)
    with pytest.raises(InvalidArgument):
        engine.create_delegation('REG-NORTH', 'CITY-DEL', 'TEMPORARY', [BOOK], start_date=JAN_1, now=JAN_15)
    with pytest.raises(InvalidArgument):
        engine.create_delegation('REG-NORTH', 'CITY-DEL', 'PERMANENT', [BOOK], start_date=JAN_1, end_date=JAN_31, now=JAN_15)
    with pytest.raises(InvalidArgument):
        _temporary(start_date=JAN_31, end_date=JAN_1)
    with pytest.raises(InvalidArgument):
        _temporary(start_date=None)
    with pytest.raises(InvalidArgument):
        _temporary(end_date='not a date')
    permanent = engine.create_delegation('REG-NORTH', 'CITY-DEL', 'PERMANENT', [BOOK], start_date='2024-01-01', now=JAN_15)
    assert permanent.end_date is None
    assert permanent.is_active(datetime(2099, 1, 1))
    conditional = engine.create_delegation('REG-NORTH', 'CITY-DEL', 'CONDITIONAL', [BOOK],
                                           start_date='2024-01-01T00:00:00Z', end_date='2024-03-01', now=JAN_15)
    assert conditional.end_date == datetime(2024, 3, 1)


def test_create_delegation_permissions_scope_and_conditions():
    seed_hierarchy()
    with pytest.raises(InvalidArgument):
        _temporary(perms=[])
    with pytest.raises(InvalidArgument):
        _temporary(perms=['bookingManagement.canFly'])
    with pytest.raises(InvalidArgument):
        _temporary(conditions={'unknown_key': True})
    with pytest.raises(InvalidArgument):
        _temporary(conditions={'max_amount': -1})
    with pytest.raises(InvalidArgument):
        _temporary(conditions={'allowed_regions': ['MARS']})
    with pytest.raises(InvalidArgument):
        _temporary(scope={'modules': ['teleportation']})
    with pytest.raises(InvalidScope):
        _temporary(perms=[BOOK, FLEET], scope={'modules': ['bookingManagement']})
    d = _temporary(scope={'regions': ['north'], 'modules': ['bookingManagement']})
    assert d.delegation_scope == {'regions': ['NORTH'], 'cities': [], 'localities': [], 'modules': ['bookingManagement']}


def test_duplicate_active_delegation_policy():
    seed_hierarchy()
    _temporary()
    # allowed by default
    assert _temporary().id is not None
    with pytest.raises(Conflict):
        _temporary(reject_duplicate_active=True)
    # an expired one does not count as a duplicate
    assert _temporary(reject_duplicate_active=True, now=FEB_1, start_date=FEB_1, end_date=datetime(2024, 3, 1)).id


def test_revoke_delegation():
    seed_hierarchy()
    d = _temporary()
    with pytest.raises(Forbidden):
        engine.revoke_delegation(d.id, 'CITY-DEL')
    with pytest.raises(Forbidden):
        engine.revoke_delegation(d.id, 'SUP1')
    with pytest.raises(NotFound):
        engine.revoke_delegation(999, 'REG-NORTH')
    revoked = engine.revoke_delegation(d.id, 'REG-NORTH')
    assert revoked.status == 'REVOKED'
    assert revoked.effective_status(JAN_15) == 'REVOKED'
    assert [a.action for a in revoked.audit_log] == ['DELEGATION_CREATED', 'DELEGATION_REVOKED']
    with pytest.raises(Conflict):
        engine.revoke_delegation(d.id, 'REG-NORTH')


def test_update_conditions_shallow_merge():
    seed_hierarchy()
    d = _temporary(conditions={'allowed_cities': ['Metro'], 'max_amount': 100})
    with pytest.raises(Forbidden):
        engine.update_conditions(d.id, 'CITY-DEL', {'max_amount': 1})
    updated = engine.update_conditions(d.id, 'REG-NORTH', {'max_amount': 250, 'requires_approval': True})
    assert updated.conditions['max_amount'] == 250
    assert updated.conditions['requires_approval'] is True
    assert updated.conditions['allowed_cities'] == ['Metro']
    assert updated.status == 'ACTIVE'
    assert updated.delegated_permissions == [BOOK]
    assert updated.audit_log[-1].action == DelegationAuditEntry.ACTION_CONDITIONS_UPDATED
    with pytest.raises(InvalidArgument):
        engine.update_conditions(d.id, 'REG-NORTH', {'bogus': 1})


def test_query_active_delegations_applies_expiry_at_read_time():
    seed_hierarchy()
    d = _temporary()
    assert [x.id for x in engine.query_active_delegations('CITY-DEL', 'delegate', JAN_15)] == [d.id]
    assert [x.id for x in engine.query_active_delegations('REG-NORTH', 'delegator', JAN_15)] == [d.id]
    assert engine.query_active_delegations('CITY-DEL', 'delegate', JAN_31) == []
    assert engine.query_active_delegations('CITY-DEL', 'delegate', FEB_1) == []
    with pytest.raises(InvalidArgument):
        engine.query_active_delegations('CITY-DEL', 'bystander', JAN_15)


def test_delegation_history_newest_first():
    seed_hierarchy()
    first = _temporary()
    second = _temporary(delegator='CITY-DEL', delegate='LOC-DEL-1')
    engine.revoke_delegation(first.id, 'REG-NORTH')
    assert [d.id for d in engine.delegation_history('CITY-DEL')] == [second.id, first.id]
    assert [d.id for d in engine.delegation_history('CITY-DEL', 'given')] == [second.id]
    assert [d.id for d in engine.delegation_history('CITY-DEL', 'received')] == [first.id]
    with pytest.raises(InvalidArgument):
        engine.delegation_history('CITY-DEL', 'sideways')


def test_can_perform_action_filters():
    seed_hierarchy()
    _temporary(delegator='SUP1', delegate='REG-NORTH', perms=[FLEET],
               conditions={'allowed_cities': ['Metro'], 'max_amount': 1000})
    assert engine.can_perform_action('REG-NORTH', FLEET, 'LOC-DEL-1', now=JAN_15)
    assert not engine.can_perform_action('REG-NORTH', FLEET, 'LOC-BLR-1', now=JAN_15)
    assert engine.can_perform_action('REG-NORTH', FLEET, 'LOC-DEL-1', amount=999, now=JAN_15)
    assert not engine.can_perform_action('REG-NORTH', FLEET, 'LOC-DEL-1', amount=1001, now=JAN_15)
    assert not engine.can_perform_action('REG-NORTH', BOOK, 'LOC-DEL-1', now=JAN_15)
    assert not engine.can_perform_action('REG-NORTH', FLEET, 'LOC-DEL-1', now=FEB_1)
    with pytest.raises(NotFound):
        engine.can_perform_action('REG-NORTH', FLEET, 'GHOST', now=JAN_15)
    with pytest.raises(InvalidArgument):
        engine.can_perform_action('REG-NORTH', 'fleetManagement.canFly', 'LOC-DEL-1', now=JAN_15)


def test_can_perform_action_any_match_wins():
    seed_hierarchy()
    _temporary(delegator='SUP1', delegate='CITY-DEL', perms=[BOOK], conditions={'allowed_local_vendors': ['LOC-DEL-1']})
    assert not engine.can_perform_action('CITY-DEL', BOOK, 'LOC-DEL-2', now=JAN_15)
    _temporary(delegator='REG-NORTH', delegate='CITY-DEL', perms=[BOOK], conditions={'allowed_regions': ['NORTH']})
    assert engine.can_perform_action('CITY-DEL', BOOK, 'LOC-DEL-2', now=JAN_15)


def test_can_perform_action_respects_scope_geography():
    seed_hierarchy()
    _temporary(delegator='SUP1', delegate='CITY-BLR', perms=[BOOK], scope={'cities': ['Bangalore']})
    assert engine.can_perform_action('CITY-BLR', BOOK, 'LOC-BLR-1', now=JAN_15)
    assert not engine.can_perform_action('CITY-BLR', BOOK, 'LOC-DEL-1', now=JAN_15)


def test_delegated_capabilities_union():
    seed_hierarchy()
    _temporary(delegator='SUP1', delegate='CITY-DEL', perms=[BOOK])
    _temporary(delegator='REG-NORTH', delegate='CITY-DEL', perms=[BOOK, FLEET], end_date=datetime(2024, 1, 10))
    assert engine.delegated_capabilities('CITY-DEL', datetime(2024, 1, 5)) == {BOOK, FLEET}
    assert engine.delegated_capabilities('CITY-DEL', JAN_15) == {BOOK}
