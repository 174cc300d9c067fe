"""Tenant context resolution.

Turns the acting principal into the Scope a request may see:

    company claim                -> {company}
    branch claim                 -> {company, branch}
    user without memberships     -> {company}
    user with memberships        -> {company, branch in memberships}
    service account              -> {company}
    anything else                -> BLOCKED

A claim made by an actor must lie inside what the actor sees on its own.

Resolution is read-only. A failing membership lookup is a DataAccessError,
never "no memberships" (that would widen the user's visibility).
"""

import logging
from typing import List, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..actors import Actor, ServiceAccountActor, UserActor
from ..errors import AccessDeniedError, DataAccessError
from ..models.org import Branch, Company
from ..models.user import Account, User, UserBranch
from ..observability.metrics import scope_resolutions_total
from .principal import Principal, TenantClaim, TenantType
from .scope import Scope

logger = logging.getLogger(__name__)


class TenantContextResolver:
    """Computes request scopes against the membership store.

    Example:
        resolver = TenantContextResolver(db)
        scope = require_scope(resolver.resolve(principal))
    """

    def __init__(self, session: Session):
        self.session = session

    def resolve(self, principal: Principal) -> Scope:
        """Compute the visibility scope of a principal.

        Args:
            principal: Tenant claim and/or authenticated actor

        Returns:
            Scope: Fresh scope value (BLOCKED when nothing identifies a tenant)

        Raises:
            AccessDeniedError: If an actor claims a tenant outside its own scope
            DataAccessError: If memberships cannot be loaded
        """
        scope = self._resolve(principal)
        scope_resolutions_total.labels(scope_kind=scope.kind.value).inc()
        logger.debug("Request scope resolved", extra=scope.log_extra())
        return scope

    def _resolve(self, principal: Principal) -> Scope:
        claim = principal.tenant
        if claim is not None and principal.actor is not None:
            self._check_claim(principal, claim)
        if claim is not None:
            if claim.type is TenantType.COMPANY:
                return Scope.company(claim.id)
            return Scope.branch(claim.company_id, claim.id)
        return self._actor_scope(principal)

    def _actor_scope(self, principal: Principal) -> Scope:
        actor = principal.actor
        if actor is None:
            return Scope.blocked()

        if principal.company_id is None:
            logger.warning(
                "Principal has an actor but no company, blocking",
                extra={"actor_kind": actor.kind.value},
            )
            return Scope.blocked()

        if isinstance(actor, ServiceAccountActor):
            return Scope.company(principal.company_id)

        branch_ids = self.membership_branch_ids(actor.id)
        if not branch_ids:
            return Scope.company(principal.company_id)
        return Scope.branch_set(principal.company_id, branch_ids)

    def _check_claim(self, principal: Principal, claim: TenantClaim) -> None:
        """An actor may only narrow its own scope with a claim.

        A member of some branches can claim one of them, never another branch
        or the company level.
        """
        branch_id = claim.id if claim.type is TenantType.BRANCH else None
        own_scope = self._actor_scope(principal)
        if not own_scope.can_see(claim.company_id, branch_id):
            logger.info(
                "Tenant claim outside the actor's scope",
                extra={**own_scope.log_extra(), "claimed_tenant_id": str(claim.id)},
            )
            raise AccessDeniedError(
                "The claimed tenant is outside the actor's own scope",
                tenant_id=claim.id,
            )

    def membership_branch_ids(self, user_id: UUID) -> List[UUID]:
        """Branch ids the user is a member of."""
        stmt = select(UserBranch.branch_id).where(UserBranch.user_id == user_id)
        try:
            return list(self.session.execute(stmt).scalars().all())
        except SQLAlchemyError as exc:
            raise DataAccessError(
                "Could not load branch memberships", user_id=user_id
            ) from exc

    def load_tenant_claim(self, tenant_id: UUID) -> TenantClaim:
        """Resolve a tenant id (X-Tenant-ID) to a claim.

        An active branch wins over an active company with the same id.

        Raises:
            AccessDeniedError: If no active branch or company has this id
            DataAccessError: If the lookup fails
        """
        try:
            branch = self.session.execute(
                select(Branch).where(Branch.id == tenant_id, Branch.active.is_(True))
            ).scalar_one_or_none()
            if branch is not None:
                return TenantClaim.for_branch(branch.id, branch.company_id)

            company = self.session.execute(
                select(Company).where(Company.id == tenant_id, Company.active.is_(True))
            ).scalar_one_or_none()
        except SQLAlchemyError as exc:
            raise DataAccessError("Could not load tenant", tenant_id=tenant_id) from exc

        if company is None:
            raise AccessDeniedError("Tenant not found or inactive", tenant_id=tenant_id)
        return TenantClaim.for_company(company.id)

    def load_principal(self, actor_id: UUID, tenant: Optional[TenantClaim] = None) -> Principal:
        """Build a principal for an actor id, probing users first, then accounts.

        Raises:
            AccessDeniedError: If the id is neither a user nor an account
            DataAccessError: If the lookup fails
        """
        try:
            user = self.session.get(User, actor_id)
            if user is not None:
                return Principal(tenant=tenant, actor=UserActor(user.id), company_id=user.company_id)

            account = self.session.get(Account, actor_id)
        except SQLAlchemyError as exc:
            raise DataAccessError("Could not load actor", actor_id=actor_id) from exc

        if account is None:
            raise AccessDeniedError(
                "The id does not belong to a user or a service account", actor_id=actor_id
            )
        return Principal(
            tenant=tenant, actor=ServiceAccountActor(account.id), company_id=account.company_id
        )

    def resolve_actor(self, actor_id: UUID) -> Actor:
        """Typed actor for an id (user or service account)."""
        return self.load_principal(actor_id).actor


def require_scope(scope: Scope) -> Scope:
    """Reject BLOCKED scopes.

    Raises:
        AccessDeniedError: If the scope is BLOCKED
    """
    if scope.is_blocked:
        raise AccessDeniedError("No tenant could be resolved for this request")
    return scope


def authorize(scope: Scope, company_id: Optional[UUID], branch_id: Optional[UUID] = None) -> None:
    """Check that a scope may act on the given tenant.

    Raises:
        AccessDeniedError: If the scope is BLOCKED or the tenant lies outside it
    """
    require_scope(scope)
    if not scope.can_see(company_id, branch_id):
        logger.info(
            "Tenant access denied",
            extra={**scope.log_extra(), "target_company_id": str(company_id)},
        )
        raise AccessDeniedError(
            "Access denied to the requested tenant",
            company_id=company_id,
            branch_id=branch_id,
        )
