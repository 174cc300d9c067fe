"""Stock items and the movements booked against them"""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, Text, Uuid,
)
from sqlalchemy.orm import relationship

from ..actors import Actor, actor_columns, actor_from_columns
from .base import Base, utcnow


class Item(Base):
    """Stock item owned by a company or branch."""
    __tablename__ = "item"
    __table_args__ = (
        Index("ix_item_company_branch", "company_id", "branch_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=True)
    branch_id = Column(Uuid, ForeignKey("branch.id", ondelete="SET NULL"), nullable=True)
    name = Column(Text, nullable=False)
    observation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    movements = relationship("Movement", back_populates="item")


class Movement(Base):
    """Stock movement (in/out) of an item. Scoped and numbered through the item."""
    __tablename__ = "movement"
    __table_args__ = (
        CheckConstraint("movement_type IN ('in', 'out')", name="ck_movement_type"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    item_id = Column(Uuid, ForeignKey("item.id", ondelete="CASCADE"), nullable=False, index=True)
    reference_number = Column(Text, nullable=True)
    movement_type = Column(Text, nullable=False)
    quantity = Column(Integer, nullable=False, default=0)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="SET NULL"), nullable=True)
    account_id = Column(Uuid, ForeignKey("account.id", ondelete="SET NULL"), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    item = relationship("Item", back_populates="movements")

    @property
    def actor(self):
        return actor_from_columns(self.user_id, self.account_id)

    @actor.setter
    def actor(self, actor: Actor):
        for key, value in actor_columns(actor).items():
            setattr(self, key, value)
