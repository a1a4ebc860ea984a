# Overview: Platform settings catalog (keys, types, defaults, constraints).
# Rows in admin_settings override these defaults; missing rows fall back here.

SETTINGS_CATALOG = [
    {
        "key": "per_day_platform_fee",
        "value_type": "decimal",
        "default": "25",
        "description": "Daily subscription fee charged to sellers (PKR)",
        "validation": {"min": 0},
    },
    {
        "key": "new_seller_free_months",
        "value_type": "int",
        "default": "1",
        "description": "Fee-free months granted to newly onboarded sellers",
        "validation": {"min": 0, "max": 24},
    },
    {
        "key": "global_commission_percentage",
        "value_type": "decimal",
        "default": "10",
        "description": "Platform commission on order earnings (%)",
        "validation": {"min": 0, "max": 100},
    },
    {
        "key": "manual_deposits_enabled",
        "value_type": "bool",
        "default": "true",
        "description": "Allow manual wallet deposits with payment proof",
        "validation": {},
    },
    {
        "key": "cod_only_mode",
        "value_type": "bool",
        "default": "false",
        "description": "Cash-on-delivery only; disables manual deposits",
        "validation": {},
    },
    {
        "key": "flash_sale_min_discount_percentage",
        "value_type": "decimal",
        "default": "20",
        "description": "Minimum discount a flash-sale nomination must offer (%)",
        "validation": {"min": 0, "max": 100},
    },
    {
        "key": "min_payout_amount",
        "value_type": "decimal",
        "default": "1000",
        "description": "Smallest payout a seller may request (PKR)",
        "validation": {"min": 0},
    },
]

CATALOG_BY_KEY = {row["key"]: row for row in SETTINGS_CATALOG}
