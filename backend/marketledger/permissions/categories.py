# Overview: Permission category constants for grouping related permissions.


class PermissionCategory:
    """Permission categories for organization and UI display."""
    WALLET = "WALLET"
    PAYOUTS = "PAYOUTS"
    BILLING = "BILLING"
    DEPOSITS = "DEPOSITS"
    FLASH_SALES = "FLASH_SALES"
    CATALOG = "CATALOG"
    SYSTEM = "SYSTEM"
