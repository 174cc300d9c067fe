"""FastAPI dependencies for tenant scoping and list queries.

This module provides:
- get_principal: acting principal set on request.state by the host's auth layer
- get_tenant_claim: explicit tenant from the X-Tenant-ID header
- get_scope: resolved, non-BLOCKED request scope
- get_query_params: validated search/sort/pagination parameters

The dependencies raise CoreError subclasses; turning them into HTTP
responses (CoreError.status_hint) is left to the host application.
"""

from typing import Optional
from uuid import UUID

from fastapi import Depends, Header, Request
from sqlalchemy.orm import Session

from .config import get_settings
from .database import get_db
from .errors import AccessDeniedError, ValidationError
from .querying.schemas import QueryParams
from .tenancy.principal import Principal, TenantClaim
from .tenancy.resolver import TenantContextResolver, require_scope
from .tenancy.scope import Scope

__all__ = [
    "get_db",
    "get_principal",
    "get_tenant_claim",
    "get_scope",
    "get_query_params",
]


def get_principal(request: Request) -> Principal:
    """Principal placed on ``request.state.principal`` by authentication.

    Requests that were not authenticated get an anonymous principal, which
    resolves to a BLOCKED scope.
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        return Principal()
    return principal


def get_tenant_claim(
    x_tenant_id: Optional[str] = Header(None),
    principal: Principal = Depends(get_principal),
    db: Session = Depends(get_db),
) -> Optional[TenantClaim]:
    """Tenant claim from the X-Tenant-ID header.

    Only an authenticated actor may claim a tenant, and only one of its own
    company (the company itself or one of its branches).

    Raises:
        ValidationError: Header is not a UUID
        AccessDeniedError: Unknown/inactive tenant, anonymous request, or a
            tenant of another company

    Example:
        @app.get("/invoices")
        def list_invoices(claim: Optional[TenantClaim] = Depends(get_tenant_claim)):
            ...
    """
    if not x_tenant_id:
        return None

    try:
        tenant_id = UUID(x_tenant_id.strip())
    except ValueError as exc:
        raise ValidationError("X-Tenant-ID must be a UUID", field="X-Tenant-ID") from exc

    if principal.actor is None:
        raise AccessDeniedError("A tenant claim requires an authenticated actor")

    claim = TenantContextResolver(db).load_tenant_claim(tenant_id)
    if claim.company_id != principal.company_id:
        raise AccessDeniedError("Tenant belongs to another company", tenant_id=tenant_id)
    return claim


def get_scope(
    principal: Principal = Depends(get_principal),
    claim: Optional[TenantClaim] = Depends(get_tenant_claim),
    db: Session = Depends(get_db),
) -> Scope:
    """Resolved scope of the request.

    Raises:
        AccessDeniedError: Nothing identifies a tenant (BLOCKED), or the
            claimed tenant is outside the actor's branch memberships
        DataAccessError: Memberships could not be loaded

    Example:
        @app.get("/boxes")
        def list_boxes(
            db: Session = Depends(get_db),
            scope: Scope = Depends(get_scope),
            params: QueryParams = Depends(get_query_params),
        ):
            scope_filter = ScopeTranslator().translate(Box, scope)
            return QueryBuilder().run(db, Box, params, scope_filter=scope_filter).to_dict()
    """
    if claim is not None:
        principal = Principal(tenant=claim, actor=principal.actor, company_id=principal.company_id)
    return require_scope(TenantContextResolver(db).resolve(principal))


def get_query_params(request: Request) -> QueryParams:
    """List parameters from the query string (``fields`` may repeat).

    Raises:
        ValidationError: Malformed page, limit or order
    """
    query = request.query_params
    raw = {key: query.get(key) for key in query.keys()}
    if "fields" in query:
        raw["fields"] = query.getlist("fields")
    return QueryParams.parse(raw, max_limit=get_settings().QUERY_MAX_LIMIT)
