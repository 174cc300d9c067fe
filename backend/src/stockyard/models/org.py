"""Company and Branch models - the two tenant levels"""

from uuid import uuid4

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Text, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, utcnow


class Company(Base):
    """Top-level tenant. Owns branches and, through them, all scoped data."""
    __tablename__ = "company"

    id = Column(Uuid, primary_key=True, default=uuid4)
    name = Column(Text, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    branches = relationship("Branch", back_populates="company")
    users = relationship("User", back_populates="company")

    @validates("name")
    def validate_name(self, key, value):
        """Company name cannot be empty"""
        if not value or not value.strip():
            raise ValueError("Company name cannot be empty")
        return value.strip()

    def __repr__(self):
        return f"<Company(id={self.id}, name='{self.name}')>"


class Branch(Base):
    """Second tenant level. A branch always belongs to exactly one company."""
    __tablename__ = "branch"
    __table_args__ = (
        Index("ix_branch_company_id", "company_id"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    name = Column(Text, nullable=False)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    company = relationship("Company", back_populates="branches")
    memberships = relationship("UserBranch", back_populates="branch")

    def __repr__(self):
        return f"<Branch(id={self.id}, company_id={self.company_id}, name='{self.name}')>"
