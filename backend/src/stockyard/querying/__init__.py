"""Generic search, sort and pagination of tenant-scoped lists."""

from .builder import QueryBuilder
from .fields import DEFAULT_FIELD_CATALOG, FieldCatalog, FieldKind, field_predicate
from .schemas import PageInfo, QueryParams, QueryResult

__all__ = [
    "QueryBuilder",
    "DEFAULT_FIELD_CATALOG",
    "FieldCatalog",
    "FieldKind",
    "field_predicate",
    "PageInfo",
    "QueryParams",
    "QueryResult",
]
