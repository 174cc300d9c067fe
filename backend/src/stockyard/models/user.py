"""User, service Account and branch Membership models"""

import re
from uuid import uuid4

from sqlalchemy import Column, DateTime, ForeignKey, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship, validates

from .base import Base, utcnow


class User(Base):
    """Human user of a company.

    A user without memberships sees the whole company; a user with one or
    more memberships only sees those branches.
    """
    __tablename__ = "user"

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    email = Column(Text, nullable=False)
    name = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    company = relationship("Company", back_populates="users")
    memberships = relationship("UserBranch", back_populates="user", cascade="all, delete-orphan")

    __table_args__ = (
        UniqueConstraint("company_id", "email", name="uq_user_company_email"),
    )

    @validates("email")
    def validate_email(self, key, value):
        """Basic email format validation"""
        if not re.match(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$', value):
            raise ValueError("Invalid email format")
        return value.lower()

    def __repr__(self):
        return f"<User(id={self.id}, email='{self.email}')>"


class Account(Base):
    """Service account. Always bound to a company, never to branches."""
    __tablename__ = "account"

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=False)
    username = Column(Text, nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    def __repr__(self):
        return f"<Account(id={self.id}, username='{self.username}')>"


class UserBranch(Base):
    """Membership linking a user to one branch."""
    __tablename__ = "user_branch"
    __table_args__ = (
        UniqueConstraint("user_id", "branch_id", name="uq_user_branch_user_branch"),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=False, index=True)
    branch_id = Column(Uuid, ForeignKey("branch.id", ondelete="CASCADE"), nullable=False)
    date_joined = Column(DateTime(timezone=True), nullable=True, default=utcnow)

    # Relationships
    user = relationship("User", back_populates="memberships")
    branch = relationship("Branch", back_populates="memberships")
