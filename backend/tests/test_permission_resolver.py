from datetime import datetime
import pytest
from vendorhub import get_db
from vendorhub.constants.permissions import flatten_matrix
from vendorhub.errors import Conflict, InvalidArgument, InvalidHierarchy, InvalidScope, NotFound, PermissionDenied
from vendorhub.models.authz import PermissionHistoryEntry
from vendorhub.services import delegation as engine
from vendorhub.services import permissions as resolver
from tests.test_utils_seed import ensure_role_for_level, ensure_vendor, seed_default_roles, seed_hierarchy

BOOK = 'bookingManagement.canCreateBookings'
VIEW_FLEET = 'fleetManagement.canViewFleet'
REPORTS = 'reporting.canViewReports'
NOW = datetime(2024, 1, 15)


def test_assign_default_role_copies_matrix_and_seeds_history():
    seed_hierarchy()
    role = ensure_role_for_level(2, [BOOK, REPORTS])
    grant = resolver.assign_default_role('REG-NORTH', 2, assigned_by='SUP1')
    assert grant.vendor_level == 2
    assert grant.version == 1
    assert flatten_matrix(grant.granted_permissions) == {BOOK, REPORTS}
    [entry] = grant.history
    assert (entry.change_type, entry.permission, entry.previous_value, entry.new_value, entry.granted_by) == (
        PermissionHistoryEntry.CHANGE_DEFAULT, 'ALL', False, True, 'SUP1')
    # copied by value: editing the role later leaves the grant alone
    role.permissions = {**role.permissions, 'reporting': {'canViewReports': False, 'canGenerateReports': False, 'canExportReports': False}}
    get_db().commit()
    assert REPORTS in flatten_matrix(resolver.get_grant('REG-NORTH').granted_permissions)


def test_assign_default_role_failures():
    seed_hierarchy()
    with pytest.raises(NotFound):
        resolver.assign_default_role('GHOST')
    with pytest.raises(NotFound):
        resolver.assign_default_role('REG-NORTH')
    ensure_role_for_level(2, [BOOK])
    with pytest.raises(InvalidArgument):
        resolver.assign_default_role('REG-NORTH', 3)
    resolver.assign_default_role('REG-NORTH')
    with pytest.raises(Conflict):
        resolver.assign_default_role('REG-NORTH', 2)


def test_update_permissions_records_only_real_changes():
    seed_hierarchy()
    ensure_role_for_level(3, [BOOK, VIEW_FLEET])
    resolver.assign_default_role('CITY-DEL')
    grant, changes = resolver.update_permissions('CITY-DEL', 'REG-NORTH', {
        'bookingManagement': {'canCreateBookings': True, 'canCancelBookings': True},
        'fleetManagement': {'canViewFleet': False},
    })
    assert [(c['permission'], c['previous_value'], c['new_value']) for c in changes] == [
        ('fleetManagement.canViewFleet', True, False),
        ('bookingManagement.canCancelBookings', False, True),
    ]
    assert flatten_matrix(grant.granted_permissions) == {BOOK, 'bookingManagement.canCancelBookings'}
    assert grant.version == 2
    types = [(h.change_type, h.permission, h.granted_by) for h in grant.history[1:]]
    assert types == [
        ('REVOKED', 'fleetManagement.canViewFleet', 'REG-NORTH'),
        ('GRANTED', 'bookingManagement.canCancelBookings', 'REG-NORTH'),
    ]
    assert grant.history[-1].notes == 'Changed from false to true'


def test_update_permissions_history_follows_declared_order():
    seed_hierarchy()
    ensure_role_for_level(3, ['reporting.canViewReports'])
    resolver.assign_default_role('CITY-DEL')
    grant, changes = resolver.update_permissions('CITY-DEL', 'REG-NORTH', {
        'reporting': {'canExportReports': True, 'canGenerateReports': True, 'canViewReports': False},
        'driverManagement': {'canViewDrivers': True},
    })
    expected = [
        'driverManagement.canViewDrivers',
        'reporting.canViewReports',
        'reporting.canGenerateReports',
        'reporting.canExportReports',
    ]
    assert [c['permission'] for c in changes] == expected
    assert [h.permission for h in grant.history[1:]] == expected


def test_update_permissions_noop_and_errors():
    seed_hierarchy()
    ensure_role_for_level(3, [BOOK])
    resolver.assign_default_role('CITY-DEL')
    grant, changes = resolver.update_permissions('CITY-DEL', 'REG-NORTH', {'bookingManagement': {'canCreateBookings': True}})
    assert changes == []
    assert grant.version == 1
    assert len(grant.history) == 1
    with pytest.raises(NotFound):
        resolver.update_permissions('LOC-DEL-1', 'CITY-DEL', {})
    with pytest.raises(InvalidArgument):
        resolver.update_permissions('CITY-DEL', 'REG-NORTH', {'bookingManagement': {'canTeleport': True}})
    with pytest.raises(InvalidArgument):
        resolver.update_permissions('CITY-DEL', '', {})


def test_effective_permissions_union_of_role_and_delegation():
    seed_hierarchy()
    ensure_role_for_level(3, [VIEW_FLEET, REPORTS])
    resolver.assign_default_role('CITY-DEL')
    engine.create_delegation('REG-NORTH', 'CITY-DEL', 'TEMPORARY', [BOOK, VIEW_FLEET],
                             start_date=datetime(2024, 1, 1), end_date=datetime(2024, 1, 31), now=NOW)
    eff = resolver.get_effective_permissions('CITY-DEL', NOW)
    assert eff['role_permissions'] == [VIEW_FLEET, REPORTS]
    assert eff['delegated_permissions'] == [BOOK, VIEW_FLEET]
    assert eff['all_permissions'] == [BOOK, VIEW_FLEET, REPORTS]
    assert resolver.has_permission('CITY-DEL', BOOK, NOW)
    assert not resolver.has_permission('CITY-DEL', BOOK, datetime(2024, 2, 1))
    assert resolver.has_permission('CITY-DEL', REPORTS, datetime(2024, 2, 1))


def test_effective_permissions_without_grant():
    seed_hierarchy()
    eff = resolver.get_effective_permissions('LOC-DEL-1', NOW)
    assert eff == {'role_permissions': [], 'delegated_permissions': [], 'all_permissions': []}
    with pytest.raises(NotFound):
        resolver.get_effective_permissions('GHOST', NOW)
    with pytest.raises(InvalidArgument):
        resolver.has_permission('LOC-DEL-1', 'nope.nothing', NOW)


def test_can_delegate_permission_uses_role_template():
    seed_hierarchy()
    seed_default_roles()
    assert resolver.can_delegate_permission('REG-NORTH', BOOK)
    assert not resolver.can_delegate_permission('REG-NORTH', 'fleetManagement.canRemoveVehicles')
    assert not resolver.can_delegate_permission('LOC-DEL-1', BOOK)
    assert resolver.can_delegate_permission('SUP1', 'complianceManagement.canTrackCompliance')
    # capability outside the delegatable subset
    assert not resolver.can_delegate_permission('SUP1', REPORTS)


def test_can_delegate_permission_respects_can_delegate_flag():
    ensure_vendor('SOLO', 2, region='EAST')
    ensure_role_for_level(2, [BOOK], delegatable=[BOOK], can_delegate=False)
    assert not resolver.can_delegate_permission('SOLO', BOOK)


def test_validate_delegation_request():
    seed_hierarchy()
    seed_default_roles()
    assert resolver.validate_delegation_request('REG-NORTH', 'CITY-DEL', [BOOK, VIEW_FLEET]) is True
    with pytest.raises(PermissionDenied) as exc:
        resolver.validate_delegation_request('REG-NORTH', 'CITY-DEL', [BOOK, 'fleetManagement.canRemoveVehicles'])
    assert 'fleetManagement.canRemoveVehicles' in exc.value.description
    with pytest.raises(InvalidHierarchy):
        resolver.validate_delegation_request('CITY-DEL', 'REG-NORTH', [BOOK])
    with pytest.raises(InvalidScope):
        resolver.validate_delegation_request('REG-NORTH', 'CITY-BLR', [BOOK])
    with pytest.raises(NotFound):
        resolver.validate_delegation_request('REG-NORTH', 'GHOST', [BOOK])
    with pytest.raises(InvalidArgument):
        resolver.validate_delegation_request('REG-NORTH', 'CITY-DEL', [])
