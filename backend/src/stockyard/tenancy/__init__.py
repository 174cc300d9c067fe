"""Tenant scoping: who may see what, and how that becomes a query filter."""

from .principal import Principal, TenantClaim, TenantType
from .registry import ScopePath, ScopeRegistry, ScopeRule, SequenceLevel
from .resolver import TenantContextResolver, authorize, require_scope
from .rules import build_default_registry, default_registry
from .scope import Scope, ScopeKind
from .translator import ScopeFilter, ScopeTranslator

__all__ = [
    "Principal",
    "TenantClaim",
    "TenantType",
    "ScopePath",
    "ScopeRegistry",
    "ScopeRule",
    "SequenceLevel",
    "TenantContextResolver",
    "authorize",
    "require_scope",
    "build_default_registry",
    "default_registry",
    "Scope",
    "ScopeKind",
    "ScopeFilter",
    "ScopeTranslator",
]
