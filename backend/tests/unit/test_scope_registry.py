"""Unit tests for the scope-path table and the scope translator

Tests cover:
- Registration checks (duplicates, path shape, tenant and reference columns)
- Lookup of unknown entity types
- Filters produced for each scope shape, own-column and via-parent
"""

import pytest
from uuid import uuid4

from sqlalchemy import select
from sqlalchemy.sql.elements import False_

from stockyard.errors import ConfigurationError
from stockyard.models import (
    Box, BoxItem, Customer, Expedition, Invoice, Movement, MovementLog, ProductionOrder, Project,
)
from stockyard.tenancy import (
    Scope, ScopePath, ScopeRegistry, ScopeTranslator, SequenceLevel, default_registry,
)


def _sql(stmt) -> str:
    return " ".join(str(stmt).split())


class TestRegistration:
    """Test ScopeRegistry.register() validation"""

    def test_own_and_via_rules(self):
        registry = ScopeRegistry()
        own = registry.register(Invoice, ScopePath.own(), sequenced=True)
        via = registry.register(BoxItem, ScopePath.via(BoxItem.box, Box.project))

        assert own.tenant_model is Invoice
        assert via.tenant_model is Project
        assert via.path.describe() == "BoxItem.box -> Box.project"
        assert "Invoice" in registry and BoxItem in registry
        assert Box not in registry

    def test_duplicate_registration_rejected(self):
        registry = ScopeRegistry()
        registry.register(Customer)
        with pytest.raises(ConfigurationError):
            registry.register(Customer)

    def test_one_to_many_hop_rejected(self):
        registry = ScopeRegistry()
        with pytest.raises(ConfigurationError, match="many-to-one"):
            registry.register(Project, ScopePath.via(Project.boxes))

    def test_hop_must_start_at_the_model(self):
        registry = ScopeRegistry()
        with pytest.raises(ConfigurationError, match="does not start at"):
            registry.register(BoxItem, ScopePath.via(Box.project))

    def test_own_path_needs_tenant_columns(self):
        registry = ScopeRegistry()
        with pytest.raises(ConfigurationError, match="company_id"):
            registry.register(Box, ScopePath.own())

    def test_sequenced_entity_needs_reference_column(self):
        registry = ScopeRegistry()
        with pytest.raises(ConfigurationError, match="reference_number"):
            registry.register(Customer, sequenced=True)

    def test_empty_via_rejected(self):
        with pytest.raises(ConfigurationError):
            ScopePath.via()

    def test_unknown_entity_type(self):
        with pytest.raises(ConfigurationError, match="no scope rule"):
            ScopeRegistry().rule_for("Warehouse")


class TestDefaultRegistry:
    """Test the rules shipped for the back-office models"""

    @pytest.mark.parametrize("model", [Box, BoxItem, Expedition, Movement, ProductionOrder])
    def test_child_entities_are_scoped_through_a_parent(self, model):
        assert not default_registry.rule_for(model).path.is_own

    @pytest.mark.parametrize("model", [Invoice, Project, MovementLog, Box, Movement])
    def test_sequenced_entities(self, model):
        assert default_registry.rule_for(model).sequenced

    def test_production_orders_are_numbered_per_branch(self):
        assert default_registry.rule_for(ProductionOrder).sequence_level is SequenceLevel.BRANCH


class TestTranslate:
    """Test ScopeTranslator.translate() output"""

    def setup_method(self):
        self.translator = ScopeTranslator()

    def test_company_scope_on_own_columns(self):
        scope_filter = self.translator.translate(Invoice, Scope.company(uuid4()))

        assert scope_filter.entity is Invoice
        assert scope_filter.joins == ()
        assert len(scope_filter.criteria) == 1
        assert "invoice.company_id =" in _sql(scope_filter.apply(select(Invoice)))

    def test_branch_scope_adds_branch_equality(self):
        scope_filter = self.translator.translate(Invoice, Scope.branch(uuid4(), uuid4()))
        sql = _sql(scope_filter.apply(select(Invoice)))

        assert "invoice.company_id =" in sql
        assert "invoice.branch_id =" in sql

    def test_branch_set_uses_membership(self):
        scope_filter = self.translator.translate(Invoice, Scope.branch_set(uuid4(), [uuid4(), uuid4()]))

        assert "invoice.branch_id IN" in _sql(scope_filter.apply(select(Invoice)))

    def test_via_parent_joins_and_filters_on_parent(self):
        scope_filter = self.translator.translate(Box, Scope.company(uuid4()))
        sql = _sql(scope_filter.apply(select(Box)))

        assert scope_filter.joins == (Box.project,)
        assert "JOIN project ON project.id = box.project_id" in sql
        assert "project.company_id =" in sql
        assert "LEFT OUTER" not in sql

    def test_two_hop_path(self):
        scope_filter = self.translator.translate(BoxItem, Scope.company(uuid4()))
        sql = _sql(scope_filter.apply(select(BoxItem)))

        assert "JOIN box ON box.id = box_item.box_id" in sql
        assert "JOIN project ON project.id = box.project_id" in sql

    def test_blocked_is_a_false_criterion_without_joins(self):
        scope_filter = self.translator.translate(Box, Scope.blocked())

        assert scope_filter.joins == ()
        assert len(scope_filter.criteria) == 1
        assert isinstance(scope_filter.criteria[0], False_)

    def test_unregistered_entity_never_unscoped(self):
        translator = ScopeTranslator(ScopeRegistry())
        with pytest.raises(ConfigurationError):
            translator.translate(Invoice, Scope.company(uuid4()))

    def test_entity_by_name(self):
        scope_filter = self.translator.translate("Movement", Scope.company(uuid4()))
        assert scope_filter.entity is Movement


class TestPartition:
    """Test ScopeTranslator.partition() output"""

    def test_missing_branch_means_company_level_rows(self):
        scope_filter = ScopeTranslator().partition(ProductionOrder, uuid4(), None)

        assert "project.branch_id IS NULL" in _sql(scope_filter.apply(select(ProductionOrder)))

    def test_branch_is_matched_exactly(self):
        scope_filter = ScopeTranslator().partition(ProductionOrder, uuid4(), uuid4())

        assert "project.branch_id =" in _sql(scope_filter.apply(select(ProductionOrder)))
