# Overview: Permission system package.

from .categories import PermissionCategory
from .definitions import (
    PERMISSION_DEFINITIONS,
    WALLET_PERMISSIONS,
    PAYOUT_PERMISSIONS,
    BILLING_PERMISSIONS,
    DEPOSIT_PERMISSIONS,
    FLASH_SALE_PERMISSIONS,
    CATALOG_PERMISSIONS,
    SYSTEM_PERMISSIONS,
)
from .roles import DEFAULT_ROLE_PERMISSIONS

__all__ = [
    "PermissionCategory",
    "PERMISSION_DEFINITIONS",
    "WALLET_PERMISSIONS",
    "PAYOUT_PERMISSIONS",
    "BILLING_PERMISSIONS",
    "DEPOSIT_PERMISSIONS",
    "FLASH_SALE_PERMISSIONS",
    "CATALOG_PERMISSIONS",
    "SYSTEM_PERMISSIONS",
    "DEFAULT_ROLE_PERMISSIONS",
]
