# orderflow/utils/permissions.py

"""
Which role may do what. Every route asks can() through the
require_capability dependency before running.
"""

from orderflow.models.user import Role

ALL_ROLES = frozenset(r.value for r in Role)

CAPABILITIES = {
    "orders:read": ALL_ROLES,
    "orders:create": {Role.ADMIN.value, Role.BILLING.value},
    "orders:edit": {Role.ADMIN.value, Role.BILLING.value},
    "orders:delete": {Role.ADMIN.value},
    "orders:verify_payment": {Role.ADMIN.value, Role.WALLET.value},
    "orders:process": {Role.ADMIN.value, Role.LOGISTICS.value},
    "orders:deliver": {Role.ADMIN.value, Role.COURIER.value},
    "receipts:read": {Role.ADMIN.value, Role.WALLET.value},
    "receipts:create": {Role.ADMIN.value, Role.WALLET.value},
    "users:manage": {Role.ADMIN.value},
}


def can(role: str, capability: str) -> bool:
    """Unknown capabilities are denied."""
    return role in CAPABILITIES.get(capability, ())


def capabilities_for(role: str) -> list[str]:
    return sorted(c for c, roles in CAPABILITIES.items() if role in roles)
