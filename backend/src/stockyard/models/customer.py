"""Customer and CustomerGroup models"""

from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Index, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class CustomerGroup(Base):
    """Named group of customers. Sequenced per company."""
    __tablename__ = "customer_group"
    __table_args__ = (
        UniqueConstraint("company_id", "reference_number", name="uq_customer_group_company_reference"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=True)
    branch_id = Column(Uuid, ForeignKey("branch.id", ondelete="SET NULL"), nullable=True)
    reference_number = Column(Text, nullable=True)
    name = Column(Text, nullable=False)
    observation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    customers = relationship("Customer", back_populates="group")


class Customer(Base):
    """Business customer of a company or branch."""
    __tablename__ = "customer"
    __table_args__ = (
        Index("ix_customer_company_branch", "company_id", "branch_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=True)
    branch_id = Column(Uuid, ForeignKey("branch.id", ondelete="SET NULL"), nullable=True)
    customer_group_id = Column(Uuid, ForeignKey("customer_group.id", ondelete="SET NULL"), nullable=True)
    name = Column(Text, nullable=False)
    email = Column(Text, nullable=True)
    observation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    group = relationship("CustomerGroup", back_populates="customers")

    def to_dict(self):
        """Convert customer to dictionary representation"""
        return {
            "id": str(self.id),
            "company_id": str(self.company_id) if self.company_id else None,
            "branch_id": str(self.branch_id) if self.branch_id else None,
            "name": self.name,
            "email": self.email,
            "observation": self.observation,
            "created_at": self.created_at.isoformat(),
        }
