from .tenancy import Tenant, TenantSequence
from .inventory import InventoryItem
from .ledger import LedgerEntry
from .customers import Customer
from .sites import ConstructionSite
from .sales import Sale, SaleLine
from .consumption import InternalUseRecord, StockAdjustment
from .purchasing import PurchaseOrder, PurchaseOrderLine
from .notifications import Notification
from .reporting import DailyStockSnapshot

__all__ = [
    'Tenant', 'TenantSequence',
    'InventoryItem', 'LedgerEntry',
    'Customer', 'ConstructionSite',
    'Sale', 'SaleLine',
    'InternalUseRecord', 'StockAdjustment',
    'PurchaseOrder', 'PurchaseOrderLine',
    'Notification', 'DailyStockSnapshot',
]
