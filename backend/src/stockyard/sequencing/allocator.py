"""Sequential reference allocation.

Hands out the next human-readable reference number ("001", "002", ...) of an
entity type inside a tenant partition. The sequence is derived from the
committed rows on every call: there is no counter table and no in-process
cache, so a rolled-back allocation leaves nothing behind.

The allocator works inside the caller's transaction. Each attempt runs in a
savepoint; a conflicting attempt rolls back only its savepoint and is
retried. The caller's transaction is never committed or rolled back here.
"""

import logging
import time
from typing import Any, Callable, Optional, Tuple, Union
from uuid import UUID

from sqlalchemy import func, inspect, select
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..errors import ConcurrencyConflictError, ConfigurationError, DataAccessError, ValidationError
from ..observability.metrics import (
    reference_allocation_conflicts_total,
    reference_allocation_duration_seconds,
    reference_allocations_total,
)
from ..tenancy.registry import REFERENCE_COLUMN, ScopeRule, SequenceLevel
from ..tenancy.resolver import authorize
from ..tenancy.scope import Scope, ScopeKind
from ..tenancy.translator import ScopeFilter, ScopeTranslator
from .formatting import next_reference_number
from .locking import LockStrategy, SequenceKey, is_conflict, strategy_for

logger = logging.getLogger(__name__)


class ReferenceAllocator:
    """Allocates reference numbers per (entity type, tenant partition).

    Example:
        allocator = ReferenceAllocator()
        with get_db_session() as db:
            invoice = Invoice(type="sale")
            allocator.assign(db, invoice, scope)   # invoice.reference_number == "001"
    """

    def __init__(
        self,
        translator: Optional[ScopeTranslator] = None,
        settings: Optional[Settings] = None,
        lock_strategy: Optional[LockStrategy] = None,
        max_retries: Optional[int] = None,
    ):
        self.translator = translator or ScopeTranslator()
        self.settings = settings or get_settings()
        self.lock_strategy = lock_strategy
        self.max_retries = max_retries if max_retries is not None else self.settings.REFERENCE_ALLOCATION_RETRIES

    def allocate(self, session: Session, entity_type: Union[str, type], scope: Scope) -> str:
        """Next reference number of ``entity_type`` in ``scope``.

        The number is only reserved for as long as the caller's transaction
        holds the lock; insert the row carrying it before committing, or use
        assign().

        Args:
            session: Session of the caller's business transaction
            entity_type: Sequenced model class or its name
            scope: Resolved request scope

        Returns:
            str: Zero-padded reference number

        Raises:
            ConfigurationError: Unknown or non-sequenced entity type, or a
                scope that does not identify one partition
            DataIntegrityError: The current maximum is not a digit string
            ConcurrencyConflictError: Retries exhausted
            DataAccessError: Any other store failure
        """
        rule = self._sequenced_rule(entity_type)
        key, scope_filter = self._partition(rule, scope)

        def attempt(strategy: LockStrategy) -> str:
            return self._next_reference(session, rule, scope_filter, strategy)

        return self._run(session, rule, key, attempt)

    def assign(self, session: Session, instance: Any, scope: Scope) -> str:
        """Allocate, set ``instance.reference_number`` and flush the row.

        The sequence is the one of the row's own tenant: its own columns, or
        the parent reached through its scope path (loaded when only the
        foreign key is set). Own-column instances without a tenant get the
        scope's company (and its branch for a single-branch scope). The
        row's tenant must lie inside the scope. A unique-constraint collision
        on the reference counts as a conflict and is retried.

        Raises:
            AccessDeniedError: The row's tenant is outside the scope
            ValidationError: A via-parent row without an existing parent
            (plus everything allocate() raises)
        """
        rule = self._sequenced_rule(type(instance))
        self._require_tenant(rule, scope)

        if rule.path.is_own:
            if instance.company_id is None:
                instance.company_id = scope.company_id
            if instance.branch_id is None and scope.kind is ScopeKind.BRANCH:
                instance.branch_id = scope.branch_id
        company_id, branch_id = self._instance_tenant(session, rule, instance)
        authorize(scope, company_id, branch_id)
        key, scope_filter = self._tenant_partition(rule, company_id, branch_id)

        def attempt(strategy: LockStrategy) -> str:
            reference = self._next_reference(session, rule, scope_filter, strategy)
            setattr(instance, REFERENCE_COLUMN, reference)
            session.add(instance)
            session.flush()
            return reference

        def reference_taken() -> bool:
            reference = getattr(instance, REFERENCE_COLUMN)
            column = getattr(rule.model, REFERENCE_COLUMN)
            stmt = select(scope_filter.apply(select(rule.model.id)).where(column == reference).exists())
            return bool(session.execute(stmt).scalar())

        return self._run(session, rule, key, attempt, reference_taken)

    def _sequenced_rule(self, entity_type: Union[str, type]) -> ScopeRule:
        rule = self.translator.registry.rule_for(entity_type)
        if not rule.sequenced:
            raise ConfigurationError(
                f"Entity type {rule.entity_type} does not issue reference numbers"
            )
        return rule

    def _require_tenant(self, rule: ScopeRule, scope: Scope) -> None:
        if scope.is_blocked or scope.company_id is None:
            raise ConfigurationError(
                f"Cannot allocate {rule.entity_type} references without a tenant",
                scope_kind=scope.kind.value,
            )

    def _partition(self, rule: ScopeRule, scope: Scope) -> Tuple[SequenceKey, ScopeFilter]:
        """Partition addressed by a scope alone.

        A COMPANY scope on a branch-level sequence addresses the head-office
        partition (branch IS NULL), not the branches of the company.
        """
        self._require_tenant(rule, scope)
        if rule.sequence_level is SequenceLevel.BRANCH and scope.kind is ScopeKind.BRANCH_SET:
            raise ConfigurationError(
                f"{rule.entity_type} references are numbered per branch; "
                "a single branch or company scope is required",
                scope_kind=scope.kind.value,
            )
        return self._tenant_partition(rule, scope.company_id, scope.branch_id)

    def _tenant_partition(
        self,
        rule: ScopeRule,
        company_id: UUID,
        branch_id: Optional[UUID],
    ) -> Tuple[SequenceKey, ScopeFilter]:
        """Sequence key and the filter selecting the rows of that sequence."""
        if rule.sequence_level is SequenceLevel.COMPANY:
            key = SequenceKey(rule.entity_type, company_id)
            return key, self.translator.translate(rule.model, Scope.company(company_id))
        key = SequenceKey(rule.entity_type, company_id, branch_id)
        return key, self.translator.partition(rule.model, company_id, branch_id)

    def _instance_tenant(
        self, session: Session, rule: ScopeRule, instance: Any
    ) -> Tuple[Optional[UUID], Optional[UUID]]:
        """(company_id, branch_id) of a row, read through its scope path."""
        if rule.path.is_own:
            return instance.company_id, instance.branch_id

        hops = rule.path.hops
        try:
            with session.no_autoflush:
                current = instance
                for index, hop in enumerate(hops):
                    parent = getattr(current, hop.key)
                    if parent is None:
                        return self._load_parent_tenant(session, rule, current, hops[index:])
                    current = parent
        except SQLAlchemyError as exc:
            raise DataAccessError(
                f"Could not load the tenant of a {rule.entity_type}", entity_type=rule.entity_type
            ) from exc
        return current.company_id, current.branch_id

    @staticmethod
    def _load_parent_tenant(
        session: Session, rule: ScopeRule, child: Any, hops: Tuple[Any, ...]
    ) -> Tuple[Optional[UUID], Optional[UUID]]:
        """Tenant of the parent a child only references by foreign key."""
        first = hops[0]
        child_mapper = inspect(type(child))
        criteria = []
        for local, remote in first.property.local_remote_pairs:
            value = getattr(child, child_mapper.get_property_by_column(local).key)
            if value is None:
                raise ValidationError(
                    f"{rule.entity_type} needs a {first.key} before it can be numbered",
                    field=first.key,
                )
            criteria.append(remote == value)

        target = rule.tenant_model
        stmt = select(target.company_id, target.branch_id).select_from(first.property.mapper.class_)
        for hop in hops[1:]:
            stmt = stmt.join(hop)
        row = session.execute(stmt.where(*criteria)).one_or_none()
        if row is None:
            raise ValidationError(
                f"The {first.key} of this {rule.entity_type} does not exist", field=first.key
            )
        company_id, branch_id = row
        return company_id, branch_id

    def _pad_width(self, rule: ScopeRule) -> int:
        width = rule.pad_width or self.settings.REFERENCE_PAD_WIDTH
        if width > self.settings.REFERENCE_MAX_PAD_WIDTH:
            raise ConfigurationError(
                f"Pad width {width} of {rule.entity_type} exceeds REFERENCE_MAX_PAD_WIDTH"
            )
        return width

    def _next_reference(
        self,
        session: Session,
        rule: ScopeRule,
        scope_filter: ScopeFilter,
        strategy: LockStrategy,
    ) -> str:
        column = getattr(rule.model, REFERENCE_COLUMN)
        digits = func.ltrim(column, "0")
        stmt = (
            scope_filter.apply(select(column))
            .where(column.is_not(None))
            .order_by(func.length(digits).desc(), digits.desc())
            .limit(1)
        )
        stmt = strategy.lock_max_row(stmt, rule.model)
        current = session.execute(stmt).scalar_one_or_none()
        return next_reference_number(current, self._pad_width(rule), rule.entity_type)

    def _run(
        self,
        session: Session,
        rule: ScopeRule,
        key: SequenceKey,
        attempt: Callable[[LockStrategy], str],
        reference_taken: Optional[Callable[[], bool]] = None,
    ) -> str:
        entity_type = rule.entity_type
        started = time.perf_counter()
        strategy = self.lock_strategy or strategy_for(session.get_bind().dialect.name)
        log_extra = {
            "entity_type": entity_type,
            "company_id": str(key.company_id),
            "lock_strategy": strategy.name,
        }

        tries = 0
        while True:
            tries += 1
            try:
                savepoint = session.begin_nested()
            except SQLAlchemyError as exc:
                # The outer transaction could not start; nothing to retry here
                raise self._failure(exc, entity_type) from exc

            try:
                strategy.acquire(session, key)
                reference = attempt(strategy)
            except DBAPIError as exc:
                savepoint.rollback()
                if not self._is_collision(exc, reference_taken, entity_type):
                    raise DataAccessError(
                        f"Reference allocation for {entity_type} failed", entity_type=entity_type
                    ) from exc
                if tries >= self.max_retries:
                    reference_allocation_conflicts_total.labels(
                        entity_type=entity_type, outcome="exhausted"
                    ).inc()
                    logger.warning(
                        "Reference allocation retries exhausted",
                        extra={**log_extra, "attempt": tries},
                    )
                    raise ConcurrencyConflictError(
                        f"Could not allocate a {entity_type} reference after {tries} attempts",
                        entity_type=entity_type,
                    ) from exc
                reference_allocation_conflicts_total.labels(
                    entity_type=entity_type, outcome="retried"
                ).inc()
                logger.info(
                    "Reference allocation conflict, retrying",
                    extra={**log_extra, "attempt": tries},
                )
                continue
            except SQLAlchemyError as exc:
                savepoint.rollback()
                raise DataAccessError(
                    f"Reference allocation for {entity_type} failed", entity_type=entity_type
                ) from exc
            except BaseException:
                savepoint.rollback()
                raise

            savepoint.commit()
            break

        reference_allocations_total.labels(entity_type=entity_type, lock_strategy=strategy.name).inc()
        reference_allocation_duration_seconds.labels(entity_type=entity_type).observe(
            time.perf_counter() - started
        )
        logger.info(
            "Reference number allocated",
            extra={**log_extra, "reference_number": reference, "attempt": tries},
        )
        return reference

    def _is_collision(
        self,
        exc: DBAPIError,
        reference_taken: Optional[Callable[[], bool]],
        entity_type: str,
    ) -> bool:
        if is_conflict(exc):
            return True
        if not isinstance(exc, IntegrityError) or reference_taken is None:
            return False
        try:
            return reference_taken()
        except SQLAlchemyError as check_exc:
            raise DataAccessError(
                f"Reference allocation for {entity_type} failed", entity_type=entity_type
            ) from check_exc

    @staticmethod
    def _failure(exc: SQLAlchemyError, entity_type: str) -> Exception:
        if is_conflict(exc):
            return ConcurrencyConflictError(
                f"Could not start a transaction to allocate a {entity_type} reference",
                entity_type=entity_type,
            )
        return DataAccessError(
            f"Reference allocation for {entity_type} failed", entity_type=entity_type
        )
