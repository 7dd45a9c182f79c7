"""Seed definitions for the default role of each hierarchy level.
(Consumed by scripts/seed_roles.py – single source of truth for level templates.)
"""

# Level -> role template; permission lists are capability paths, '*' implies all
DEFAULT_ROLES = {
    1: {
        'role_name': 'Super Vendor',
        'permissions': ['*'],
        'can_delegate': True,
        'delegatable_permissions': ['*'],
    },
    2: {
        'role_name': 'Regional Vendor',
        'permissions': [
            'fleetManagement.canManageFleet', 'fleetManagement.canViewFleet', 'fleetManagement.canAddVehicles',
            'fleetManagement.canUpdateVehicleDetails',
            'driverManagement.canOnboardDrivers', 'driverManagement.canVerifyDrivers', 'driverManagement.canViewDrivers',
            'driverManagement.canUpdateDriverDetails',
            'bookingManagement.canCreateBookings', 'bookingManagement.canViewBookings', 'bookingManagement.canUpdateBookings',
            'paymentManagement.canProcessPayments', 'paymentManagement.canViewPayments', 'paymentManagement.canGenerateInvoices',
            'complianceManagement.canTrackCompliance', 'complianceManagement.canViewComplianceReports',
            'vendorManagement.canManageSubVendors', 'vendorManagement.canViewSubVendors',
            'vendorManagement.canCreateSubVendors', 'vendorManagement.canUpdateSubVendorDetails',
            'reporting.canViewReports', 'reporting.canGenerateReports',
        ],
        'can_delegate': True,
        'delegatable_permissions': [
            'fleetManagement.canViewFleet', 'fleetManagement.canAddVehicles',
            'driverManagement.canOnboardDrivers', 'driverManagement.canVerifyDrivers', 'driverManagement.canViewDrivers',
            'bookingManagement.canCreateBookings', 'bookingManagement.canViewBookings',
            'paymentManagement.canViewPayments',
            'complianceManagement.canTrackCompliance', 'complianceManagement.canViewComplianceReports',
        ],
    },
    3: {
        'role_name': 'City Vendor',
        'permissions': [
            'fleetManagement.canViewFleet', 'fleetManagement.canAddVehicles', 'fleetManagement.canUpdateVehicleDetails',
            'driverManagement.canOnboardDrivers', 'driverManagement.canViewDrivers', 'driverManagement.canUpdateDriverDetails',
            'bookingManagement.canCreateBookings', 'bookingManagement.canViewBookings', 'bookingManagement.canUpdateBookings',
            'paymentManagement.canViewPayments',
            'complianceManagement.canViewComplianceReports',
            'vendorManagement.canViewSubVendors', 'vendorManagement.canCreateSubVendors',
            'reporting.canViewReports',
        ],
        'can_delegate': True,
        'delegatable_permissions': [
            'fleetManagement.canViewFleet',
            'driverManagement.canViewDrivers',
            'bookingManagement.canCreateBookings', 'bookingManagement.canViewBookings',
        ],
    },
    4: {
        'role_name': 'Local Vendor',
        'permissions': [
            'fleetManagement.canViewFleet',
            'driverManagement.canViewDrivers',
            'bookingManagement.canCreateBookings', 'bookingManagement.canViewBookings',
            'paymentManagement.canViewPayments',
            'reporting.canViewReports',
        ],
        'can_delegate': False,
        'delegatable_permissions': [],
    },
}
