"""Central definitions of hierarchy levels, regions and the fixed permission matrix shape.
Capability paths (``module.capability``) are part of stored data; never rename one silently.
"""
from __future__ import annotations
import copy
from typing import Dict, List, Tuple, Set, Optional, Any

from vendorhub.errors import InvalidArgument

LEVEL_SUPER = 1
LEVEL_REGIONAL = 2
LEVEL_CITY = 3
LEVEL_LOCAL = 4
ALL_LEVELS = (LEVEL_SUPER, LEVEL_REGIONAL, LEVEL_CITY, LEVEL_LOCAL)
LEVEL_NAMES = {
    LEVEL_SUPER: 'Super',
    LEVEL_REGIONAL: 'Regional',
    LEVEL_CITY: 'City',
    LEVEL_LOCAL: 'Local',
}

REGIONS = ('NORTH', 'SOUTH', 'EAST', 'WEST', 'CENTRAL')

PERMISSION_MODULES: Dict[str, Tuple[str, ...]] = {
    'fleetManagement': ('canManageFleet', 'canViewFleet', 'canAddVehicles', 'canRemoveVehicles', 'canUpdateVehicleDetails'),
    'driverManagement': ('canOnboardDrivers', 'canVerifyDrivers', 'canViewDrivers', 'canUpdateDriverDetails', 'canRemoveDrivers'),
    'bookingManagement': ('canCreateBookings', 'canViewBookings', 'canUpdateBookings', 'canCancelBookings'),
    'paymentManagement': ('canProcessPayments', 'canViewPayments', 'canGenerateInvoices', 'canViewFinancialReports'),
    'complianceManagement': ('canTrackCompliance', 'canViewComplianceReports', 'canUpdateComplianceStatus'),
    'vendorManagement': ('canManageSubVendors', 'canViewSubVendors', 'canCreateSubVendors', 'canUpdateSubVendorDetails'),
    'reporting': ('canViewReports', 'canGenerateReports', 'canExportReports'),
}

# Only these capabilities are meaningful to hand down through a delegation.
DELEGATABLE_MODULES: Dict[str, Tuple[str, ...]] = {
    'fleetManagement': ('canManageFleet', 'canViewFleet', 'canAddVehicles'),
    'driverManagement': ('canOnboardDrivers', 'canVerifyDrivers', 'canViewDrivers'),
    'bookingManagement': ('canCreateBookings', 'canViewBookings'),
    'paymentManagement': ('canProcessPayments', 'canViewPayments'),
    'complianceManagement': ('canTrackCompliance', 'canViewComplianceReports'),
}

Matrix = Dict[str, Dict[str, bool]]


def build_capability_paths(shape: Dict[str, Tuple[str, ...]] = PERMISSION_MODULES) -> List[str]:
    paths: List[str] = []
    for module, capabilities in shape.items():
        for cap in capabilities:
            paths.append(f"{module}.{cap}")
    return paths

ALL_CAPABILITY_PATHS = build_capability_paths()
DELEGATABLE_CAPABILITY_PATHS = build_capability_paths(DELEGATABLE_MODULES)


def split_capability_path(path: Any) -> Tuple[str, str]:
    """Return (module, capability) for a known path or raise InvalidArgument."""
    if not isinstance(path, str) or path.count('.') != 1:
        raise InvalidArgument(f"Malformed capability path: {path!r}")
    module, cap = path.split('.', 1)
    if cap not in PERMISSION_MODULES.get(module, ()):
        raise InvalidArgument(f"Unknown capability path: {path}")
    return module, cap


def empty_matrix(shape: Dict[str, Tuple[str, ...]] = PERMISSION_MODULES) -> Matrix:
    return {module: {cap: False for cap in caps} for module, caps in shape.items()}


def normalize_matrix(raw: Optional[Dict[str, Any]], shape: Dict[str, Tuple[str, ...]] = PERMISSION_MODULES, *, fill: bool = True) -> Matrix:
    """Validate a module -> capability -> bool mapping against ``shape``.

    With ``fill`` every capability of the shape is present in the result (missing ones False);
    without it only the provided entries are returned, which is what diff-style updates need.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise InvalidArgument('permission matrix must be an object')
    out: Matrix = empty_matrix(shape) if fill else {}
    for module, caps in raw.items():
        if module not in shape:
            raise InvalidArgument(f"Unknown permission module: {module}")
        if not isinstance(caps, dict):
            raise InvalidArgument(f"Permission module {module} must be an object")
        for cap, value in caps.items():
            if cap not in shape[module]:
                raise InvalidArgument(f"Unknown capability path: {module}.{cap}")
            if not isinstance(value, bool):
                raise InvalidArgument(f"{module}.{cap} must be boolean")
            out.setdefault(module, {})[cap] = value
    return out


def flatten_matrix(matrix: Optional[Dict[str, Dict[str, Any]]]) -> Set[str]:
    """Set of capability paths whose value is true."""
    granted: Set[str] = set()
    for module, caps in (matrix or {}).items():
        for cap, value in (caps or {}).items():
            if value is True:
                granted.add(f"{module}.{cap}")
    return granted


def copy_matrix(matrix: Optional[Matrix]) -> Matrix:
    return copy.deepcopy(matrix or {})


def matrix_from_paths(paths: List[str], shape: Dict[str, Tuple[str, ...]] = PERMISSION_MODULES) -> Matrix:
    """Matrix of ``shape`` with exactly ``paths`` set true; ``'*'`` grants everything in the shape."""
    matrix = empty_matrix(shape)
    selected = build_capability_paths(shape) if '*' in paths else paths
    for path in selected:
        module, cap = split_capability_path(path)
        if cap not in shape.get(module, ()):
            raise InvalidArgument(f"Capability {path} is not allowed here")
        matrix[module][cap] = True
    return matrix
