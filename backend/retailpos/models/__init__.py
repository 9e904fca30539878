from .tenancy import Store, CURRENCIES
from .catalog import Category, Product, StockMovement
from .invoices import Invoice, InvoiceLine, PAYMENT_METHODS
from .customers import Customer, GENDERS
from .expenses import Expense
from .partnerships import Partnership, PartnershipAsset, ASSET_TYPES
from .auth import User, SessionToken, ROLES

__all__ = [
    'Store', 'CURRENCIES',
    'Category', 'Product', 'StockMovement',
    'Invoice', 'InvoiceLine', 'PAYMENT_METHODS',
    'Customer', 'GENDERS',
    'Expense',
    'Partnership', 'PartnershipAsset', 'ASSET_TYPES',
    'User', 'SessionToken', 'ROLES',
]
