# Overview: Default role -> permission mappings (least privilege; admin gets everything).

from .definitions import PERMISSION_DEFINITIONS


DEFAULT_ROLE_PERMISSIONS = {
    "admin": [perm[0] for perm in PERMISSION_DEFINITIONS],

    "seller": [
        "VIEW_OWN_WALLET",
        "REQUEST_PAYOUT",
        "VIEW_OWN_SUBSCRIPTION",
        "REQUEST_PLAN_CHANGE",
        "CREATE_DEPOSIT",
        "NOMINATE_FLASH_SALE",
        "MANAGE_OWN_PRODUCTS",
    ],

    "customer": [
        "VIEW_OWN_WALLET",
        "CREATE_DEPOSIT",
    ],

    # Read-only finance access for the support desk
    "support_agent": [
        "VIEW_FINANCE",
        "VIEW_AUDIT_LOG",
    ],
}
