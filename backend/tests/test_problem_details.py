from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from app.domain_errors import DomainError, supplier_not_found
from app.problem_details import build_problem_details_response, build_webhook_error_response


def test_problem_details_payload_contains_stable_code_and_rfc7807_fields() -> None:
    response = build_problem_details_response(
        DomainError(
            code="PROBE_ERROR",
            http_status=409,
            message="probe failed",
            details={"probe": True},
        )
    )

    assert response.status_code == 409
    assert response.media_type == "application/problem+json"

    body = response.body.decode("utf-8")
    assert '"type":"https://api.trade-ops.local/problems/probe_error"' in body
    assert '"title":"Conflict"' in body
    assert '"status":409' in body
    assert '"detail":"probe failed"' in body
    assert '"code":"PROBE_ERROR"' in body
    assert '"details":{"probe":true}' in body


def test_problem_details_omits_details_when_none() -> None:
    response = build_problem_details_response(supplier_not_found())

    body = response.body.decode("utf-8")
    assert response.status_code == 404
    assert '"code":"SUPPLIER_NOT_FOUND"' in body
    assert '"details"' not in body


def test_webhook_error_body_is_flat() -> None:
    response = build_webhook_error_response(
        DomainError(code="INVALID_TOKEN", http_status=401, message="Invalid token")
    )

    assert response.status_code == 401
    assert response.body.decode("utf-8") == '{"error":"Invalid token","code":"INVALID_TOKEN"}'


def test_fastapi_exception_handler_maps_domain_error_to_problem_details() -> None:
    app = FastAPI()

    async def _handle_domain_error(_: Request, exc: DomainError):
        return build_problem_details_response(exc)

    app.add_exception_handler(DomainError, _handle_domain_error)

    @app.get("/boom")
    def _boom():
        raise DomainError(
            code="ROUTE_PROBLEM",
            http_status=409,
            message="route failed",
            details={"source": "test"},
        )

    client = TestClient(app)
    response = client.get("/boom")

    assert response.status_code == 409
    assert response.headers["content-type"].startswith("application/problem+json")
    payload = response.json()
    assert payload["code"] == "ROUTE_PROBLEM"
    assert payload["detail"] == "route failed"
