from .catalog import Product, Category
from .sales import Sale, SaleLine
from .inventory import InventoryMovement
from .license import License

__all__ = [
    'Product', 'Category',
    'Sale', 'SaleLine',
    'InventoryMovement',
    'License',
]
