"""Project and the models that inherit its tenant scope.

Project is the aggregate root of the expedition side: production orders,
expeditions and boxes carry no tenant columns and are scoped through it.
"""

from uuid import uuid4

from sqlalchemy import (
    Column, Date, DateTime, ForeignKey, Index, Integer, Text, UniqueConstraint, Uuid,
)
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class Project(Base):
    """Customer project owned by a company and optionally a branch."""
    __tablename__ = "project"
    __table_args__ = (
        UniqueConstraint("company_id", "reference_number", name="uq_project_company_reference"),
        Index("ix_project_company_branch", "company_id", "branch_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=True)
    branch_id = Column(Uuid, ForeignKey("branch.id", ondelete="SET NULL"), nullable=True)
    customer_id = Column(Uuid, ForeignKey("customer.id", ondelete="SET NULL"), nullable=True)
    reference_number = Column(Text, nullable=True)
    name = Column(Text, nullable=False)
    delivery_date = Column(Date, nullable=True)
    total_quantity = Column(Integer, nullable=False, default=0)
    observation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    customer = relationship("Customer")
    production_orders = relationship("ProductionOrder", back_populates="project")
    expeditions = relationship("Expedition", back_populates="project")
    boxes = relationship("Box", back_populates="project")

    def __repr__(self):
        return f"<Project(id={self.id}, reference_number='{self.reference_number}')>"


class ProductionOrder(Base):
    """Production order (O.P.). Numbered per company branch of its project."""
    __tablename__ = "production_order"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    reference_number = Column(Text, nullable=True)
    type = Column(Text, nullable=False, default="Normal")
    planned_quantity = Column(Integer, nullable=False, default=0)
    issue_date = Column(Date, nullable=True)
    close_date = Column(Date, nullable=True)
    observation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="production_orders")


class Expedition(Base):
    """Shipment run of a project."""
    __tablename__ = "expedition"

    id = Column(Uuid, primary_key=True, default=uuid4)
    project_id = Column(Uuid, ForeignKey("project.id", ondelete="CASCADE"), nullable=False, index=True)
    main_customer_id = Column(Uuid, ForeignKey("customer.id", ondelete="SET NULL"), nullable=True)
    observation = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    project = relationship("Project", back_populates="expeditions")
    main_customer = relationship("Customer")
