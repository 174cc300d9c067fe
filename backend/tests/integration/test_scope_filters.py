"""Integration tests for scope filters against real rows

Tests cover:
- Own-column entities per scope shape
- Via-parent entities (inner join through the parent)
- Children following their parent to another tenant
- BLOCKED matching nothing
"""

import pytest
from sqlalchemy import select
from sqlalchemy.orm import Session

from stockyard.models import Box, BoxItem, Invoice, Item, Project
from stockyard.tenancy import Scope, ScopeTranslator


pytestmark = pytest.mark.integration


def _rows(session: Session, model, scope: Scope):
    scope_filter = ScopeTranslator().translate(model, scope)
    return session.execute(scope_filter.apply(select(model))).scalars().all()


@pytest.fixture
def invoices(db_session: Session, company_a, company_b, branch_a1, branch_a2):
    rows = {
        "a_company": Invoice(company_id=company_a.id, type="sale"),
        "a1": Invoice(company_id=company_a.id, branch_id=branch_a1.id, type="sale"),
        "a2": Invoice(company_id=company_a.id, branch_id=branch_a2.id, type="sale"),
        "b": Invoice(company_id=company_b.id, type="sale"),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return rows


class TestOwnColumnEntities:
    """Test filters on entities carrying company_id/branch_id"""

    def test_company_scope(self, db_session: Session, invoices, company_a):
        found = _rows(db_session, Invoice, Scope.company(company_a.id))

        assert {i.id for i in found} == {invoices[k].id for k in ("a_company", "a1", "a2")}

    def test_branch_scope(self, db_session: Session, invoices, company_a, branch_a1):
        found = _rows(db_session, Invoice, Scope.branch(company_a.id, branch_a1.id))

        assert [i.id for i in found] == [invoices["a1"].id]

    def test_branch_set_scope(self, db_session: Session, invoices, company_a, branch_a1, branch_a2):
        found = _rows(db_session, Invoice, Scope.branch_set(company_a.id, [branch_a1.id, branch_a2.id]))

        assert {i.id for i in found} == {invoices["a1"].id, invoices["a2"].id}

    def test_branch_of_other_company_sees_nothing(self, db_session: Session, invoices, company_b, branch_a1):
        assert _rows(db_session, Invoice, Scope.branch(company_b.id, branch_a1.id)) == []

    def test_blocked_matches_nothing(self, db_session: Session, invoices):
        assert _rows(db_session, Invoice, Scope.blocked()) == []


class TestViaParentEntities:
    """Test entities scoped through their parent project"""

    def test_boxes_follow_project_scope(self, db_session: Session, company_a, company_b, branch_a1):
        project_a1 = Project(company_id=company_a.id, branch_id=branch_a1.id, name="North orders")
        project_b = Project(company_id=company_b.id, name="Harbour orders")
        db_session.add_all([project_a1, project_b])
        db_session.flush()
        box_a = Box(project_id=project_a1.id, order_referral_id=1)
        box_b = Box(project_id=project_b.id, order_referral_id=2)
        db_session.add_all([box_a, box_b])
        db_session.commit()

        assert [b.id for b in _rows(db_session, Box, Scope.company(company_a.id))] == [box_a.id]
        assert [b.id for b in _rows(db_session, Box, Scope.branch(company_a.id, branch_a1.id))] == [box_a.id]
        assert [b.id for b in _rows(db_session, Box, Scope.company(company_b.id))] == [box_b.id]

    def test_children_move_with_their_parent(self, db_session: Session, project_a, company_a, company_b):
        box = Box(project_id=project_a.id)
        db_session.add(box)
        db_session.flush()
        item = Item(company_id=company_a.id, name="Carton")
        db_session.add(item)
        db_session.flush()
        line = BoxItem(box_id=box.id, item_id=item.id, quantity=4)
        db_session.add(line)
        db_session.commit()

        assert [b.id for b in _rows(db_session, Box, Scope.company(company_a.id))] == [box.id]
        assert [row.id for row in _rows(db_session, BoxItem, Scope.company(company_a.id))] == [line.id]

        project_a.company_id = company_b.id
        db_session.commit()

        assert _rows(db_session, Box, Scope.company(company_a.id)) == []
        assert _rows(db_session, BoxItem, Scope.company(company_a.id)) == []
        assert [b.id for b in _rows(db_session, Box, Scope.company(company_b.id))] == [box.id]
        assert [row.id for row in _rows(db_session, BoxItem, Scope.company(company_b.id))] == [line.id]

    def test_blocked_matches_nothing_through_parent(self, db_session: Session, project_a):
        db_session.add(Box(project_id=project_a.id))
        db_session.commit()

        assert _rows(db_session, Box, Scope.blocked()) == []
