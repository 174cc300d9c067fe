"""Scope rules of the back-office entities."""

from ..models import (
    Box,
    BoxItem,
    Customer,
    CustomerGroup,
    DeliveryNote,
    Expedition,
    Invoice,
    Item,
    Movement,
    MovementLog,
    ProductionOrder,
    Project,
)
from .registry import ScopePath, ScopeRegistry, SequenceLevel


def build_default_registry() -> ScopeRegistry:
    """Registry covering every scoped model in ``stockyard.models``."""
    registry = ScopeRegistry()

    # Own company_id/branch_id
    registry.register(CustomerGroup, ScopePath.own(), sequenced=True)
    registry.register(Customer, ScopePath.own())
    registry.register(Project, ScopePath.own(), sequenced=True)
    registry.register(Invoice, ScopePath.own(), sequenced=True)
    registry.register(DeliveryNote, ScopePath.own(), sequenced=True)
    registry.register(Item, ScopePath.own())
    registry.register(MovementLog, ScopePath.own(), sequenced=True)

    # Through the parent
    registry.register(
        ProductionOrder,
        ScopePath.via(ProductionOrder.project),
        sequenced=True,
        sequence_level=SequenceLevel.BRANCH,
    )
    registry.register(Expedition, ScopePath.via(Expedition.project))
    registry.register(Box, ScopePath.via(Box.project), sequenced=True)
    registry.register(BoxItem, ScopePath.via(BoxItem.box, Box.project))
    registry.register(Movement, ScopePath.via(Movement.item), sequenced=True)

    return registry


default_registry = build_default_registry()
