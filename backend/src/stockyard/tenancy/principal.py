"""The acting identity handed to the resolver.

The host's authentication layer builds a Principal; this module only
describes its shape.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional
from uuid import UUID

from ..actors import Actor


class TenantType(str, Enum):
    """Level of an explicit tenant claim"""
    COMPANY = "company"
    BRANCH = "branch"


@dataclass(frozen=True)
class TenantClaim:
    """Explicit tenant the request acts as.

    For a company claim ``company_id`` equals ``id``; for a branch claim it
    is the branch's parent company.
    """
    type: TenantType
    id: UUID
    company_id: UUID

    @classmethod
    def for_company(cls, company_id: UUID) -> "TenantClaim":
        return cls(TenantType.COMPANY, company_id, company_id)

    @classmethod
    def for_branch(cls, branch_id: UUID, company_id: UUID) -> "TenantClaim":
        return cls(TenantType.BRANCH, branch_id, company_id)


@dataclass(frozen=True)
class Principal:
    """Who is asking.

    Attributes:
        tenant: Explicit tenant claim, takes precedence when present
        actor: Authenticated user or service account
        company_id: Home company of the actor
    """
    tenant: Optional[TenantClaim] = None
    actor: Optional[Actor] = None
    company_id: Optional[UUID] = None

    @property
    def is_anonymous(self) -> bool:
        return self.tenant is None and self.actor is None
