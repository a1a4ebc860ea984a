from .auth import User, Role, UserRole, Permission, RolePermission, SessionToken
from .security import SecurityEvent
from .settings import AdminSetting
from .catalog import Product
from .wallets import (
    SellerWallet, WalletTransaction, PayoutRequest, SellerCommission,
    PlatformWallet, PlatformWalletTransaction, CustomerWallet, CustomerWalletTransaction,
)
from .billing import SellerSubscription, SubscriptionDeductionLog, PlanChangeRequest
from .deposits import PaymentMethod, DepositRequest
from .flash_sales import FlashSale, FlashSaleNomination, FlashSaleProduct

__all__ = [
    'User', 'Role', 'UserRole', 'Permission', 'RolePermission', 'SessionToken',
    'SecurityEvent',
    'AdminSetting',
    'Product',
    'SellerWallet', 'WalletTransaction', 'PayoutRequest', 'SellerCommission',
    'PlatformWallet', 'PlatformWalletTransaction', 'CustomerWallet', 'CustomerWalletTransaction',
    'SellerSubscription', 'SubscriptionDeductionLog', 'PlanChangeRequest',
    'PaymentMethod', 'DepositRequest',
    'FlashSale', 'FlashSaleNomination', 'FlashSaleProduct',
]
