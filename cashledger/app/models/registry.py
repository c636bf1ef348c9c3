# cashledger/app/models/registry.py
#
# Imports every mapped class so string-based relationships resolve and
# ``Base.metadata`` is complete. Import this module before creating tables
# or configuring mappers.

from cashledger.app.models.account import Account
from cashledger.app.models.cash_flow import CashFlow, FlowSource, FlowType
from cashledger.app.models.ledger import AccountTransaction
from cashledger.app.models.permission import Permission, Role, RolePermission
from cashledger.app.models.user import User

__all__ = [
    "Account",
    "AccountTransaction",
    "CashFlow",
    "FlowSource",
    "FlowType",
    "Permission",
    "Role",
    "RolePermission",
    "User",
]
