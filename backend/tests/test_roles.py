import pytest
from vendorhub.constants.permissions import flatten_matrix
from vendorhub.errors import Conflict, InvalidArgument, NotFound
from vendorhub.services import roles as role_registry
from tests.test_utils_seed import ensure_role_for_level, seed_default_roles


def test_create_role_fills_matrix_and_lists_by_level():
    role = role_registry.create_role('Regional Ops', 2, permissions={'reporting': {'canViewReports': True}},
                                     can_delegate=True, delegatable_permissions={'fleetManagement': {'canViewFleet': True}})
    assert flatten_matrix(role.permissions) == {'reporting.canViewReports'}
    assert role.permissions['fleetManagement']['canAddVehicles'] is False
    assert flatten_matrix(role.delegatable_permissions) == {'fleetManagement.canViewFleet'}
    role_registry.create_role('Super Ops', 1)
    assert [r.role_name for r in role_registry.list_roles()] == ['Super Ops', 'Regional Ops']


def test_create_role_validation():
    with pytest.raises(InvalidArgument):
        role_registry.create_role('', 2)
    with pytest.raises(InvalidArgument):
        role_registry.create_role('Bad Level', 5)
    with pytest.raises(InvalidArgument):
        role_registry.create_role('Bad Matrix', 2, permissions={'reporting': {'canFly': True}})
    with pytest.raises(InvalidArgument):
        # reporting is not a delegatable module
        role_registry.create_role('Bad Delegatable', 2, delegatable_permissions={'reporting': {'canViewReports': True}})
    with pytest.raises(InvalidArgument):
        role_registry.create_role('Bad Flag', 2, can_delegate='yes')
    role_registry.create_role('Taken', 3)
    with pytest.raises(Conflict):
        role_registry.create_role('Taken', 4)


def test_find_by_level_returns_first_role():
    first = ensure_role_for_level(3, role_name='City A')
    ensure_role_for_level(3, role_name='City B')
    assert role_registry.find_by_level(3).id == first.id
    assert role_registry.find_by_level(4) is None
    with pytest.raises(NotFound):
        role_registry.get_role_for_level(4)


def test_default_role_templates():
    roles = seed_default_roles()
    assert [roles[level].level for level in (1, 2, 3, 4)] == [1, 2, 3, 4]
    assert roles[1].can_delegate and roles[2].can_delegate and roles[3].can_delegate
    assert not roles[4].can_delegate
    assert flatten_matrix(roles[4].delegatable_permissions) == set()
    # each level's own grants shrink down the hierarchy
    sizes = [len(flatten_matrix(roles[level].permissions)) for level in (1, 2, 3, 4)]
    assert sizes == sorted(sizes, reverse=True)
    # a role can only delegate what it holds itself
    for level in (2, 3):
        assert flatten_matrix(roles[level].delegatable_permissions) <= flatten_matrix(roles[level].permissions)
