"""Generic list query: scope + search + sort + pagination.

Turns validated QueryParams into a SELECT on one entity type:

    SELECT ... FROM entity [JOIN parent ...]
    WHERE <scope filter> AND (<field 1 match> OR <field 2 match> ...) AND <extra>
    ORDER BY <sort field> <order>, <primary key> <order>
    LIMIT limit OFFSET (page - 1) * limit

The total count is taken over the same filtered statement without ordering
or paging.
"""

import logging
from typing import Any, Iterable, List, Optional, Sequence, Union

from sqlalchemy import Column, Select, String, false, func, inspect, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from ..config import Settings, get_settings
from ..errors import ConfigurationError, DataAccessError, ValidationError
from ..observability.metrics import list_queries_total
from ..tenancy.registry import ScopeRegistry
from ..tenancy.translator import ScopeFilter
from .fields import DEFAULT_FIELD_CATALOG, FieldCatalog, FieldKind, field_predicate
from .schemas import PageInfo, QueryParams, QueryResult

logger = logging.getLogger(__name__)

ALWAYS_SORTABLE = ("created_at", "updated_at", "reference_number")


class QueryBuilder:
    """Builds and runs list queries for any cataloged entity type.

    Example:
        scope_filter = translator.translate(Box, scope)
        params = QueryParams.parse(request.query_params)
        result = QueryBuilder().run(db, Box, params, scope_filter=scope_filter)
        return result.to_dict()
    """

    def __init__(
        self,
        catalog: Optional[FieldCatalog] = None,
        settings: Optional[Settings] = None,
        registry: Optional[ScopeRegistry] = None,
    ):
        self.catalog = catalog or DEFAULT_FIELD_CATALOG
        self.settings = settings or get_settings()
        self._registry = registry
        self.sortable = frozenset(self.catalog.names()) | frozenset(ALWAYS_SORTABLE)

    @property
    def registry(self) -> ScopeRegistry:
        if self._registry is None:
            from ..tenancy.rules import default_registry
            self._registry = default_registry
        return self._registry

    def resolve_model(self, entity_type: Union[str, type]) -> type:
        if isinstance(entity_type, str):
            return self.registry.rule_for(entity_type).model
        return entity_type

    def column(self, model: type, name: str) -> Column:
        column = inspect(model).columns.get(name)
        if column is None:
            raise ConfigurationError(f"{model.__name__} has no field {name}", field=name)
        return column

    def search_clause(self, model: type, params: QueryParams) -> Optional[ColumnElement]:
        """OR of the per-field predicates, None when no search was requested.

        Raises:
            ValidationError: A term was given without fields
            ConfigurationError: A field is not cataloged or not on the entity
        """
        if params.term is None:
            return None
        if not params.search_fields:
            raise ValidationError("A search term needs at least one field", field="fields")

        predicates = []
        for name in params.search_fields:
            kind = self.catalog.kind_of(name)
            predicate = field_predicate(kind, self.column(model, name), params.term)
            if predicate is not None:
                predicates.append(predicate)

        if not predicates:
            # Term applies to none of the fields
            return false()
        return or_(*predicates)

    def order_clause(self, model: type, params: QueryParams) -> List[ColumnElement]:
        """Sort column plus primary-key tie-breaker.

        Raises:
            ConfigurationError: The sort field is not sortable or not on the entity
        """
        name = params.sort or self.settings.DEFAULT_SORT_FIELD
        direction = params.order or self.settings.DEFAULT_SORT_ORDER
        if name not in self.sortable:
            raise ConfigurationError(f"Field {name} is not sortable", field=name)

        column = self.column(model, name)
        keys: List[Any] = [column]
        if isinstance(column.type, String) and name in self.catalog.names(FieldKind.NUMERIC):
            # "1000" after "999"
            keys = [func.length(column), column]
        keys.extend(inspect(model).primary_key)

        if direction == "desc":
            return [key.desc() for key in keys]
        return [key.asc() for key in keys]

    def build(
        self,
        entity_type: Union[str, type],
        params: QueryParams,
        scope_filter: Optional[ScopeFilter] = None,
        where: Iterable[ColumnElement] = (),
    ) -> Select:
        """Filtered statement, without ordering or paging."""
        model = self.resolve_model(entity_type)
        stmt = select(model)
        if scope_filter is not None:
            if scope_filter.entity is not model:
                raise ConfigurationError(
                    f"Scope filter of {scope_filter.entity.__name__} applied to {model.__name__}"
                )
            stmt = scope_filter.apply(stmt)

        search = self.search_clause(model, params)
        if search is not None:
            stmt = stmt.where(search)

        where = tuple(where)
        if where:
            stmt = stmt.where(*where)
        return stmt

    def run(
        self,
        session: Session,
        entity_type: Union[str, type],
        params: QueryParams,
        scope_filter: Optional[ScopeFilter] = None,
        where: Iterable[ColumnElement] = (),
        options: Sequence[Any] = (),
    ) -> QueryResult:
        """Execute a list query.

        Args:
            session: Database session
            entity_type: Model class or registered entity name
            params: Validated list parameters
            scope_filter: Tenant filter from ScopeTranslator.translate()
            where: Extra criteria, ANDed with the rest
            options: Loader options (joinedload etc.)

        Returns:
            QueryResult: Rows, total count and page info (None when unpaginated)

        Raises:
            ConfigurationError: Unknown field, sort field or entity type
            ValidationError: Limit above QUERY_MAX_LIMIT, or term without fields
            DataAccessError: The store failed
        """
        model = self.resolve_model(entity_type)
        if params.limit is not None and params.limit > self.settings.QUERY_MAX_LIMIT:
            raise ValidationError(
                f"limit cannot exceed {self.settings.QUERY_MAX_LIMIT}", field="limit"
            )

        stmt = self.build(model, params, scope_filter, where)
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())

        rows_stmt = stmt.order_by(*self.order_clause(model, params))
        if params.paginated:
            rows_stmt = rows_stmt.offset(params.offset).limit(params.limit)
        if options:
            rows_stmt = rows_stmt.options(*options)

        try:
            total = session.execute(count_stmt).scalar_one()
            data = list(session.execute(rows_stmt).scalars().unique().all())
        except SQLAlchemyError as exc:
            raise DataAccessError(f"List query on {model.__name__} failed") from exc

        pagination = PageInfo.build(total, params.page, params.limit) if params.paginated else None
        list_queries_total.labels(
            entity_type=model.__name__, paginated=str(params.paginated).lower()
        ).inc()
        logger.debug(
            "List query executed",
            extra={"entity_type": model.__name__, "count": total},
        )
        return QueryResult(data=data, count=total, pagination=pagination)
