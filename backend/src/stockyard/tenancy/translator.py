"""Express a resolved Scope as a filter on a given entity type.

Own-column entities are filtered on their own company_id/branch_id.
Via-parent entities get mandatory inner joins along their declared path and
the filter lands on the parent's columns, so a child whose parent is outside
the scope is excluded rather than returned with nulls. The join is evaluated
at query time: moving a parent to another tenant moves its children with it.
"""

from dataclasses import dataclass
from typing import Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import Select, false
from sqlalchemy.orm.attributes import QueryableAttribute
from sqlalchemy.sql.elements import ColumnElement

from .registry import ScopeRegistry, ScopeRule
from .scope import Scope, ScopeKind


@dataclass(frozen=True)
class ScopeFilter:
    """Joins plus criteria restricting one entity type to a scope."""
    entity: type
    joins: Tuple[QueryableAttribute, ...] = ()
    criteria: Tuple[ColumnElement, ...] = ()

    def apply(self, stmt: Select) -> Select:
        """Add the joins and criteria to a select() of ``entity``."""
        for hop in self.joins:
            stmt = stmt.join(hop)
        return stmt.where(*self.criteria)


class ScopeTranslator:
    """Builds ScopeFilters from the scope-path table.

    Example:
        scope_filter = translator.translate(Box, scope)
        boxes = db.execute(scope_filter.apply(select(Box))).scalars().all()
    """

    def __init__(self, registry: Optional[ScopeRegistry] = None):
        if registry is None:
            from .rules import default_registry
            registry = default_registry
        self.registry = registry

    def translate(self, entity_type: Union[str, type], scope: Scope) -> ScopeFilter:
        """Filter restricting ``entity_type`` to what ``scope`` may see.

        BLOCKED becomes an always-false criterion, never an empty filter.

        Raises:
            ConfigurationError: If the entity type has no scope rule
        """
        rule = self.registry.rule_for(entity_type)
        if scope.is_blocked:
            return ScopeFilter(rule.model, (), (false(),))

        company_column, branch_column = self._tenant_columns(rule)
        criteria = [company_column == scope.company_id]
        if scope.kind is ScopeKind.BRANCH:
            criteria.append(branch_column == scope.branch_id)
        elif scope.kind is ScopeKind.BRANCH_SET:
            criteria.append(branch_column.in_(sorted(scope.branch_ids)))

        return ScopeFilter(rule.model, rule.path.hops, tuple(criteria))

    def partition(
        self,
        entity_type: Union[str, type],
        company_id: UUID,
        branch_id: Optional[UUID],
    ) -> ScopeFilter:
        """Filter matching exactly one (company, branch) partition.

        Unlike translate(), a missing branch means "branch IS NULL"
        (company-level rows only), not "any branch".
        """
        rule = self.registry.rule_for(entity_type)
        company_column, branch_column = self._tenant_columns(rule)
        branch_criterion = branch_column.is_(None) if branch_id is None else branch_column == branch_id
        return ScopeFilter(
            rule.model,
            rule.path.hops,
            (company_column == company_id, branch_criterion),
        )

    @staticmethod
    def _tenant_columns(rule: ScopeRule):
        target = rule.tenant_model
        return target.company_id, target.branch_id
