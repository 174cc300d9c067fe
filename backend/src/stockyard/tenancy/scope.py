"""Resolved visibility scope of a request.

A Scope is computed fresh for every request, never persisted and never
mutated. It has four shapes:

    COMPANY     {company_id}                    whole company
    BRANCH      {company_id, branch_id}         one branch
    BRANCH_SET  {company_id, branch_id in set}  the user's memberships
    BLOCKED     matches nothing
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, Optional
from uuid import UUID


class ScopeKind(str, Enum):
    """Shape of a resolved scope"""
    COMPANY = "company"
    BRANCH = "branch"
    BRANCH_SET = "branch_set"
    BLOCKED = "blocked"


@dataclass(frozen=True)
class Scope:
    """Immutable tenant scope. Build it through the classmethods."""
    kind: ScopeKind
    company_id: Optional[UUID] = None
    branch_ids: FrozenSet[UUID] = field(default_factory=frozenset)

    @classmethod
    def company(cls, company_id: UUID) -> "Scope":
        if company_id is None:
            raise ValueError("A company scope needs a company_id")
        return cls(ScopeKind.COMPANY, company_id)

    @classmethod
    def branch(cls, company_id: UUID, branch_id: UUID) -> "Scope":
        if company_id is None or branch_id is None:
            raise ValueError("A branch scope needs both company_id and branch_id")
        return cls(ScopeKind.BRANCH, company_id, frozenset([branch_id]))

    @classmethod
    def branch_set(cls, company_id: UUID, branch_ids: Iterable[UUID]) -> "Scope":
        branch_ids = frozenset(branch_ids)
        if company_id is None or not branch_ids:
            raise ValueError("A branch-set scope needs a company_id and at least one branch")
        return cls(ScopeKind.BRANCH_SET, company_id, branch_ids)

    @classmethod
    def blocked(cls) -> "Scope":
        return cls(ScopeKind.BLOCKED)

    @property
    def is_blocked(self) -> bool:
        return self.kind is ScopeKind.BLOCKED

    @property
    def branch_id(self) -> Optional[UUID]:
        """The single branch of a BRANCH scope, None for every other shape."""
        if self.kind is ScopeKind.BRANCH:
            return next(iter(self.branch_ids))
        return None

    def can_see(self, company_id: Optional[UUID], branch_id: Optional[UUID] = None) -> bool:
        """Whether a row owned by (company_id, branch_id) falls inside this scope.

        Branch-restricted scopes never see company-level rows (branch_id None).
        """
        if self.is_blocked or company_id is None or company_id != self.company_id:
            return False
        if self.kind is ScopeKind.COMPANY:
            return True
        return branch_id in self.branch_ids

    def log_extra(self) -> Dict[str, Any]:
        """Fields for the ``extra`` argument of a log call."""
        extra: Dict[str, Any] = {"scope_kind": self.kind.value}
        if self.company_id is not None:
            extra["company_id"] = str(self.company_id)
        if self.branch_ids:
            extra["branch_id"] = ",".join(sorted(str(b) for b in self.branch_ids))
        return extra

    def __repr__(self) -> str:
        if self.is_blocked:
            return "<Scope BLOCKED>"
        branches = sorted(str(b) for b in self.branch_ids)
        return f"<Scope {self.kind.value} company={self.company_id} branches={branches}>"
