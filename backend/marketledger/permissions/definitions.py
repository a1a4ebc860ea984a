# Overview: All permission definitions organized by category.
# Each permission is defined as: (code, name, description, category)

from .categories import PermissionCategory


# -- WALLET --

WALLET_PERMISSIONS = [
    (
        "VIEW_OWN_WALLET",
        "View Own Wallet",
        "View own wallet balance and ledger history",
        PermissionCategory.WALLET,
    ),
    (
        "VIEW_FINANCE",
        "View Finance",
        "View all seller wallets, platform revenue and finance summaries",
        PermissionCategory.WALLET,
    ),
    (
        "ADJUST_WALLETS",
        "Adjust Wallets",
        "Credit or debit a seller wallet with a recorded reason",
        PermissionCategory.WALLET,
    ),
    (
        "MANAGE_COMMISSIONS",
        "Manage Commissions",
        "Set per-seller commission rates and grace periods",
        PermissionCategory.WALLET,
    ),
    (
        "RECORD_ORDER_EARNINGS",
        "Record Order Earnings",
        "Post order earnings and refund deductions to seller ledgers",
        PermissionCategory.WALLET,
    ),
]


# -- PAYOUTS --

PAYOUT_PERMISSIONS = [
    (
        "REQUEST_PAYOUT",
        "Request Payout",
        "Request a withdrawal of wallet funds to a bank account",
        PermissionCategory.PAYOUTS,
    ),
    (
        "MANAGE_PAYOUTS",
        "Manage Payouts",
        "Process or reject seller payout requests",
        PermissionCategory.PAYOUTS,
    ),
]


# -- BILLING --

BILLING_PERMISSIONS = [
    (
        "VIEW_OWN_SUBSCRIPTION",
        "View Own Subscription",
        "View own subscription plan, fees and deduction history",
        PermissionCategory.BILLING,
    ),
    (
        "REQUEST_PLAN_CHANGE",
        "Request Plan Change",
        "Ask an admin to switch billing plan",
        PermissionCategory.BILLING,
    ),
    (
        "MANAGE_SUBSCRIPTIONS",
        "Manage Subscriptions",
        "Override seller fees, run deductions and decide plan changes",
        PermissionCategory.BILLING,
    ),
]


# -- DEPOSITS --

DEPOSIT_PERMISSIONS = [
    (
        "CREATE_DEPOSIT",
        "Create Deposit",
        "Submit a manual deposit request with payment proof",
        PermissionCategory.DEPOSITS,
    ),
    (
        "MANAGE_DEPOSITS",
        "Manage Deposits",
        "Approve or reject deposit requests",
        PermissionCategory.DEPOSITS,
    ),
    (
        "MANAGE_PAYMENT_METHODS",
        "Manage Payment Methods",
        "Create, edit and retire deposit payment methods",
        PermissionCategory.DEPOSITS,
    ),
]


# -- FLASH SALES --

FLASH_SALE_PERMISSIONS = [
    (
        "NOMINATE_FLASH_SALE",
        "Nominate Flash Sale",
        "Nominate own products for flash sales",
        PermissionCategory.FLASH_SALES,
    ),
    (
        "MANAGE_FLASH_SALES",
        "Manage Flash Sales",
        "Create campaigns and approve or reject nominations",
        PermissionCategory.FLASH_SALES,
    ),
    (
        "RECORD_FLASH_SALE_ORDERS",
        "Record Flash Sale Orders",
        "Increment flash-sale sold counters after purchase",
        PermissionCategory.FLASH_SALES,
    ),
]


# -- CATALOG --

CATALOG_PERMISSIONS = [
    (
        "MANAGE_OWN_PRODUCTS",
        "Manage Own Products",
        "Create listings in own catalog",
        PermissionCategory.CATALOG,
    ),
]


# -- SYSTEM --

SYSTEM_PERMISSIONS = [
    (
        "MANAGE_SETTINGS",
        "Manage Settings",
        "Edit platform fee, commission and deposit settings",
        PermissionCategory.SYSTEM,
    ),
    (
        "VIEW_AUDIT_LOG",
        "View Audit Log",
        "View security events",
        PermissionCategory.SYSTEM,
    ),
    (
        "MANAGE_PERMISSIONS",
        "Manage Permissions",
        "Grant or revoke role permissions and assign roles",
        PermissionCategory.SYSTEM,
    ),
]


# Combined list of all permissions
PERMISSION_DEFINITIONS = (
    WALLET_PERMISSIONS
    + PAYOUT_PERMISSIONS
    + BILLING_PERMISSIONS
    + DEPOSIT_PERMISSIONS
    + FLASH_SALE_PERMISSIONS
    + CATALOG_PERMISSIONS
    + SYSTEM_PERMISSIONS
)
