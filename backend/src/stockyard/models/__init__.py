"""SQLAlchemy models of the tenant-scoped back-office entities"""

from .base import Base
from .org import Company, Branch
from .user import User, Account, UserBranch
from .customer import Customer, CustomerGroup
from .project import Project, ProductionOrder, Expedition
from .expedition import Invoice, DeliveryNote, Box, BoxItem
from .stock import Item, Movement
from .movement_log import MovementLog

__all__ = [
    "Base",
    "Company",
    "Branch",
    "User",
    "Account",
    "UserBranch",
    "Customer",
    "CustomerGroup",
    "Project",
    "ProductionOrder",
    "Expedition",
    "Invoice",
    "DeliveryNote",
    "Box",
    "BoxItem",
    "Item",
    "Movement",
    "MovementLog",
]
