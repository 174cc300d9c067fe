"""Documents and containers issued on the expedition side:
invoices, delivery notes, boxes and box lines."""

from uuid import uuid4

from sqlalchemy import (
    Column, DateTime, ForeignKey, Index, Integer, Numeric, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Invoice(Base):
    """Invoice. Carries its own tenant columns and is numbered per company."""
    __tablename__ = "invoice"
    __table_args__ = (
        UniqueConstraint("company_id", "reference_number", name="uq_invoice_company_reference"),
        Index("ix_invoice_company_branch", "company_id", "branch_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=True)
    branch_id = Column(Uuid, ForeignKey("branch.id", ondelete="SET NULL"), nullable=True)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="SET NULL"), nullable=True)
    reference_number = Column(Text, nullable=True)
    type = Column(Text, nullable=False, default="sale")
    total_price = Column(Numeric(12, 2), nullable=False, default=0)
    observation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project")

    def __repr__(self):
        return f"<Invoice(id={self.id}, reference_number='{self.reference_number}')>"


class DeliveryNote(Base):
    """Delivery note (romaneio). Numbered per company."""
    __tablename__ = "delivery_note"
    __table_args__ = (
        UniqueConstraint("company_id", "reference_number", name="uq_delivery_note_company_reference"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=True)
    branch_id = Column(Uuid, ForeignKey("branch.id", ondelete="SET NULL"), nullable=True)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="SET NULL"), nullable=True)
    invoice_id = Column(Uuid, ForeignKey("invoice.id", ondelete="SET NULL"), nullable=True)
    reference_number = Column(Text, nullable=True)
    observation = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    invoice = relationship("Invoice")


class Box(Base):
    """Shipping box. Scoped and numbered through its project."""
    __tablename__ = "box"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    delivery_note_id = Column(Uuid, ForeignKey("delivery_note.id", ondelete="SET NULL"), nullable=True)
    reference_number = Column(Text, nullable=True)
    order_referral_id = Column(Integer, nullable=True)
    total_quantity = Column(Integer, nullable=True)
    observation = Column(Text, nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="boxes")
    delivery_note = relationship("DeliveryNote")
    lines = relationship("BoxItem", back_populates="box", cascade="all, delete-orphan")


class BoxItem(Base):
    """Line of a box. Two hops away from its tenant (box -> project)."""
    __tablename__ = "box_item"

    id = Column(Uuid, primary_key=True, default=uuid4)
    box_id = Column(Uuid, ForeignKey("box.id", ondelete="CASCADE"), nullable=False, index=True)
    item_id = Column(Uuid, ForeignKey("item.id", ondelete="RESTRICT"), nullable=True)
    quantity = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    box = relationship("Box", back_populates="lines")
    item = relationship("Item")
