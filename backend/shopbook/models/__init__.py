from .auth import User, WorkerPermission, SessionToken, ROLE_ADMIN, ROLE_WORKER
from .security import SecurityEvent
from .credits import Credit, CreditTransaction, CREDIT_TYPES, CREDIT_TYPE_GIVEN, CREDIT_TYPE_TAKEN, CREDIT_TYPE_CASH
from .sales import Sale, SaleItem, PaymentLedgerEntry
from .customers import Customer
from .expenses import Expense
from .settings import AppSettings

__all__ = [
    'User', 'WorkerPermission', 'SessionToken', 'ROLE_ADMIN', 'ROLE_WORKER',
    'SecurityEvent',
    'Credit', 'CreditTransaction',
    'CREDIT_TYPES', 'CREDIT_TYPE_GIVEN', 'CREDIT_TYPE_TAKEN', 'CREDIT_TYPE_CASH',
    'Sale', 'SaleItem', 'PaymentLedgerEntry',
    'Customer',
    'Expense',
    'AppSettings',
]
