"""Pytest fixtures for the data-access core.

Provides reusable test fixtures for:
- Database engine and per-test schema (SQLite file database by default)
- Sessions for single-session and multi-session (concurrency) tests
- Tenants: two companies, their branches, users, memberships, service account

Set DATABASE_URL to a PostgreSQL database to run the same suite (plus the
tests marked ``postgres``) against PostgreSQL.

Usage:
    def test_first_invoice(db_session, company_a):
        allocator = ReferenceAllocator()
        assert allocator.allocate(db_session, Invoice, Scope.company(company_a.id)) == "001"
"""

import os
import tempfile

# Set environment variables BEFORE any stockyard import
_TEST_DB_DIR = tempfile.mkdtemp(prefix="stockyard-tests-")
os.environ.setdefault("DATABASE_URL", "sqlite:///" + os.path.join(_TEST_DB_DIR, "stockyard.db"))
os.environ.setdefault("LOG_JSON", "false")

from typing import Generator

import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from stockyard.database import create_db_engine
from stockyard.models import Account, Base, Branch, Company, Project, User, UserBranch

TEST_DATABASE_URL = os.environ["DATABASE_URL"]


@pytest.fixture(scope="session")
def db_engine() -> Generator[Engine, None, None]:
    """Engine built the way the application builds it."""
    engine = create_db_engine(TEST_DATABASE_URL)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine: Engine) -> Generator[sessionmaker, None, None]:
    """Session factory over a freshly created schema.

    Creates all tables before the test and drops them after. Sessions do
    not expire on commit, so reading fixture attributes never starts a new
    transaction (which would take the SQLite write lock).
    """
    Base.metadata.create_all(bind=db_engine)
    factory = sessionmaker(autoflush=False, bind=db_engine, expire_on_commit=False)
    try:
        yield factory
    finally:
        Base.metadata.drop_all(bind=db_engine)


@pytest.fixture(scope="function")
def db_session(session_factory: sessionmaker) -> Generator[Session, None, None]:
    """Create a fresh database session for each test."""
    session = session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def company_a(db_session: Session) -> Company:
    """Create company A."""
    company = Company(name="Acme Logistics")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope="function")
def company_b(db_session: Session) -> Company:
    """Create company B."""
    company = Company(name="Borealis Freight")
    db_session.add(company)
    db_session.commit()
    return company


@pytest.fixture(scope="function")
def branch_a1(db_session: Session, company_a: Company) -> Branch:
    branch = Branch(company_id=company_a.id, name="Acme North")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope="function")
def branch_a2(db_session: Session, company_a: Company) -> Branch:
    branch = Branch(company_id=company_a.id, name="Acme South")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope="function")
def branch_b1(db_session: Session, company_b: Company) -> Branch:
    branch = Branch(company_id=company_b.id, name="Borealis Harbour")
    db_session.add(branch)
    db_session.commit()
    return branch


@pytest.fixture(scope="function")
def company_user(db_session: Session, company_a: Company) -> User:
    """User of company A without branch memberships."""
    user = User(company_id=company_a.id, email="planner@acme.test", name="Company Planner")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope="function")
def branch_user(db_session: Session, company_a: Company, branch_a1: Branch, branch_a2: Branch) -> User:
    """User of company A that is a member of both of its branches."""
    user = User(company_id=company_a.id, email="clerk@acme.test", name="Branch Clerk")
    db_session.add(user)
    db_session.flush()
    db_session.add_all([
        UserBranch(user_id=user.id, branch_id=branch_a1.id),
        UserBranch(user_id=user.id, branch_id=branch_a2.id),
    ])
    db_session.commit()
    return user


@pytest.fixture(scope="function")
def north_clerk(db_session: Session, company_a: Company, branch_a1: Branch, branch_a2: Branch) -> User:
    """User of company A that is a member of branch A1 only."""
    user = User(company_id=company_a.id, email="north@acme.test", name="North Clerk")
    db_session.add(user)
    db_session.flush()
    db_session.add(UserBranch(user_id=user.id, branch_id=branch_a1.id))
    db_session.commit()
    return user



@pytest.fixture(scope="function")
def service_account(db_session: Session, company_a: Company) -> Account:
    account = Account(company_id=company_a.id, username="acme-erp-sync")
    db_session.add(account)
    db_session.commit()
    return account


@pytest.fixture(scope="function")
def project_a(db_session: Session, company_a: Company) -> Project:
    """Company-level project of company A."""
    project = Project(company_id=company_a.id, name="Spring collection")
    db_session.add(project)
    db_session.commit()
    return project
