"""Integration tests for the FastAPI dependencies

Tests cover:
- Scope of authenticated users and anonymous requests
- X-Tenant-ID claims (own branch, foreign tenant, malformed, anonymous)
- Query parameter parsing from the query string
"""

from typing import Optional

import pytest
from fastapi import Depends, FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from stockyard.actors import UserActor
from stockyard.dependencies import get_db, get_principal, get_query_params, get_scope
from stockyard.errors import CoreError
from stockyard.querying import QueryParams
from stockyard.tenancy import Principal, Scope


pytestmark = pytest.mark.integration


def _build_app() -> FastAPI:
    app = FastAPI()

    @app.exception_handler(CoreError)
    async def core_error_handler(request: Request, exc: CoreError):
        return JSONResponse(status_code=exc.status_hint, content=exc.to_dict())

    @app.get("/scope")
    def read_scope(scope: Scope = Depends(get_scope)):
        return {
            "kind": scope.kind.value,
            "company_id": str(scope.company_id),
            "branch_ids": sorted(str(b) for b in scope.branch_ids),
        }

    @app.get("/params")
    def read_params(params: QueryParams = Depends(get_query_params)):
        return params.model_dump(by_alias=True)

    return app


@pytest.fixture
def make_client(db_session: Session):
    """Client factory acting as the given principal (None = anonymous)."""
    app = _build_app()

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    def factory(principal: Optional[Principal] = None) -> TestClient:
        if principal is not None:
            app.dependency_overrides[get_principal] = lambda: principal
        return TestClient(app)

    yield factory
    app.dependency_overrides.clear()


def _principal(user) -> Principal:
    return Principal(actor=UserActor(user.id), company_id=user.company_id)


class TestGetScope:
    """Test scope resolution through the dependency chain"""

    def test_company_user(self, make_client, company_user):
        response = make_client(_principal(company_user)).get("/scope")

        assert response.status_code == 200
        assert response.json() == {
            "kind": "company",
            "company_id": str(company_user.company_id),
            "branch_ids": [],
        }

    def test_member_user(self, make_client, branch_user, branch_a1, branch_a2):
        response = make_client(_principal(branch_user)).get("/scope")

        assert response.json()["kind"] == "branch_set"
        assert response.json()["branch_ids"] == sorted([str(branch_a1.id), str(branch_a2.id)])

    def test_anonymous_request_is_denied(self, make_client, company_a):
        response = make_client().get("/scope")

        assert response.status_code == 403
        assert response.json()["kind"] == "access_denied"


class TestTenantHeader:
    """Test the X-Tenant-ID claim"""

    def test_own_branch(self, make_client, company_user, branch_a1):
        response = make_client(_principal(company_user)).get(
            "/scope", headers={"X-Tenant-ID": str(branch_a1.id)}
        )

        assert response.status_code == 200
        assert response.json()["kind"] == "branch"
        assert response.json()["branch_ids"] == [str(branch_a1.id)]

    def test_other_company_branch(self, make_client, company_user, branch_b1):
        response = make_client(_principal(company_user)).get(
            "/scope", headers={"X-Tenant-ID": str(branch_b1.id)}
        )

        assert response.status_code == 403

    def test_member_claiming_a_branch_outside_memberships(self, make_client, north_clerk, branch_a2):
        response = make_client(_principal(north_clerk)).get(
            "/scope", headers={"X-Tenant-ID": str(branch_a2.id)}
        )

        assert response.status_code == 403
        assert response.json()["kind"] == "access_denied"

    def test_member_claiming_the_company(self, make_client, north_clerk, company_a):
        response = make_client(_principal(north_clerk)).get(
            "/scope", headers={"X-Tenant-ID": str(company_a.id)}
        )

        assert response.status_code == 403

    def test_member_claiming_own_branch(self, make_client, north_clerk, branch_a1):
        response = make_client(_principal(north_clerk)).get(
            "/scope", headers={"X-Tenant-ID": str(branch_a1.id)}
        )

        assert response.status_code == 200
        assert response.json()["branch_ids"] == [str(branch_a1.id)]

    def test_malformed_header(self, make_client, company_user):
        response = make_client(_principal(company_user)).get(
            "/scope", headers={"X-Tenant-ID": "not-a-uuid"}
        )

        assert response.status_code == 422
        assert response.json()["kind"] == "validation"

    def test_claim_without_actor(self, make_client, branch_a1):
        response = make_client().get("/scope", headers={"X-Tenant-ID": str(branch_a1.id)})

        assert response.status_code == 403


class TestGetQueryParams:
    """Test list parameters from the query string"""

    def test_repeated_and_comma_separated_fields(self, make_client):
        response = make_client().get("/params?term=99&fields=order_referral_id&fields=observation,name&page=2&limit=10")

        assert response.status_code == 200
        body = response.json()
        assert body["fields"] == ["order_referral_id", "observation", "name"]
        assert body["page"] == 2
        assert body["limit"] == 10

    def test_invalid_page(self, make_client):
        response = make_client().get("/params?page=0&limit=10")

        assert response.status_code == 422
        assert response.json()["details"] == {"field": "page"}
