"""Movement log - audit trail of create/update/delete on expedition entities"""

from uuid import uuid4

from sqlalchemy import (
    CheckConstraint, Column, DateTime, ForeignKey, Text, UniqueConstraint, Uuid,
)

from ..actors import Actor, actor_columns, actor_from_columns
from .base import Base, utcnow


class MovementLog(Base):
    """One audit entry. Numbered per company; written by exactly one actor.

    Stored values of ``method``: create, update, delete.
    Stored values of ``status``: open, closed.
    """
    __tablename__ = "movement_log"
    __table_args__ = (
        UniqueConstraint("company_id", "reference_number", name="uq_movement_log_company_reference"),
        CheckConstraint("method IN ('create', 'update', 'delete')", name="ck_movement_log_method"),
        CheckConstraint("status IN ('open', 'closed')", name="ck_movement_log_status"),
        CheckConstraint(
            "(user_id IS NULL) <> (account_id IS NULL)",
            name="ck_movement_log_single_actor",
        ),
    )

    id = Column(Uuid, primary_key=True, default=uuid4)
    company_id = Column(Uuid, ForeignKey("company.id", ondelete="RESTRICT"), nullable=True)
    branch_id = Column(Uuid, ForeignKey("branch.id", ondelete="SET NULL"), nullable=True)
    reference_number = Column(Text, nullable=True)
    method = Column(Text, nullable=False)
    entity = Column(Text, nullable=False)
    entity_id = Column(Uuid, nullable=False)
    status = Column(Text, nullable=False, default="open")
    user_id = Column(Uuid, ForeignKey("user.id", ondelete="CASCADE"), nullable=True)
    account_id = Column(Uuid, ForeignKey("account.id", ondelete="CASCADE"), nullable=True)
    date = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    @property
    def actor(self):
        """The user or service account that wrote this entry."""
        return actor_from_columns(self.user_id, self.account_id)

    @actor.setter
    def actor(self, actor: Actor):
        for key, value in actor_columns(actor).items():
            setattr(self, key, value)

    def __repr__(self):
        return f"<MovementLog(entity='{self.entity}', method='{self.method}', reference_number='{self.reference_number}')>"
