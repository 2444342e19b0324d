"""
HTTP boundary tests.

Engine errors reach the caller as ``{"error", "detail", "retryable"}`` with
the status mapped in ``main.py``.
"""

import pytest

from budget_engine.exceptions import (
    EngineError,
    InsufficientCreditError,
    LockTimeoutError,
    NotFoundError,
    UnbalancedEntriesError,
    ValidationError,
)
from budget_engine.main import status_for


@pytest.fixture
def api_period(client):
    response = client.post(
        "/api/exercices/",
        json={"code": "2025", "start_date": "2025-01-01", "end_date": "2025-12-31"},
    )
    assert response.status_code == 201
    return response.json()


@pytest.fixture
def api_line(client, api_period):
    response = client.post(
        "/api/budget/lignes",
        json={
            "code": "61-001",
            "label": "Fournitures de bureau",
            "category": "OPERATING",
            "period_code": "2025",
            "budget_initial": "5000000",
            "account_number": "604",
        },
    )
    assert response.status_code == 201
    return response.json()


class TestStatusMapping:
    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (ValidationError("x"), 422),
            (UnbalancedEntriesError("x"), 422),
            (NotFoundError("x"), 404),
            (InsufficientCreditError("x"), 409),
            (LockTimeoutError("x"), 503),
            (EngineError("x"), 400),
        ],
    )
    def test_status_for(self, exc, status):
        assert status_for(exc) == status


class TestEndpoints:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_insufficient_credit_body(self, client, api_line):
        client.post("/api/budget/lignes/61-001/engager", json={"amount": "4500000"})

        response = client.post("/api/budget/lignes/61-001/engager", json={"amount": "600000"})

        assert response.status_code == 409
        body = response.json()
        assert body["error"] == "INSUFFICIENT_CREDIT"
        assert body["retryable"] is False
        line = client.get("/api/budget/lignes/61-001").json()
        assert line["available"] in ("500000.00", "500000")

    def test_unknown_line_is_404(self, client, api_period):
        response = client.get("/api/budget/lignes/NOPE")

        assert response.status_code == 404
        assert response.json()["error"] == "NOT_FOUND"

    def test_malformed_body_gets_typed_error(self, client, api_period):
        response = client.post("/api/budget/lignes", json={"code": "61-002"})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["retryable"] is False
        assert "label" in body["detail"]

    def test_unbalanced_transaction_is_422(self, client, api_period):
        response = client.post(
            "/api/comptabilite/ecritures",
            json={
                "period_code": "2025",
                "entry_date": "2025-03-31",
                "journal_code": "OD",
                "label": "Déséquilibrée",
                "lines": [
                    {"account_number": "604", "debit": "100"},
                    {"account_number": "401", "credit": "90"},
                ],
            },
        )

        assert response.status_code == 422
        assert response.json()["error"] == "UNBALANCED_ENTRIES"

    def test_expenditure_cycle_over_http(self, client, api_line):
        engaged = client.post(
            "/api/depenses/engagements",
            json={"reference": "ENG-1", "line_code": "61-001", "amount": "1000", "document_ref": "BE-1"},
        )
        assert engaged.status_code in (200, 201)

        liquidated = client.post(
            "/api/depenses/ENG-1/liquidation", json={"amount": "1000", "document_ref": "F-1"}
        )

        assert liquidated.status_code == 200
        assert liquidated.json()["phase"] == "LIQUIDATED"
        entries = client.get("/api/comptabilite/ecritures", params={"compte": "401"}).json()
        assert len(entries) == 1

    def test_closing_protocol_over_http(self, client, api_period):
        assert client.post("/api/exercices/2025/cloture", json={}).status_code == 200

        premature = client.post("/api/exercices/2025/cloture/confirmation", json={"confirmation": True})
        assert premature.status_code == 409
        assert premature.json()["error"] == "CLOSING_PRECONDITION"

        flags = {
            "entries_balanced": True,
            "trial_balance_coherent": True,
            "reconciliation_complete": True,
            "bank_reconciliation_complete": True,
        }
        assert client.post("/api/exercices/2025/cloture/controles", json=flags).status_code == 200
        adjustments = {
            "depreciation": True,
            "provisions": True,
            "accrued_expenses": True,
            "deferred_revenue": True,
        }
        assert client.post("/api/exercices/2025/cloture/ajustements", json=adjustments).status_code == 200

        missing = client.post("/api/exercices/2025/cloture/confirmation", json={"confirmation": None})
        assert missing.status_code == 422
        assert missing.json()["error"] == "VALIDATION_ERROR"

        omitted = client.post("/api/exercices/2025/cloture/confirmation", json={"closed_by": "DAF"})
        assert omitted.status_code == 422
        assert omitted.json() == {
            "error": "VALIDATION_ERROR",
            "detail": "La clôture définitive exige une confirmation explicite.",
            "retryable": False,
        }

        closed = client.post("/api/exercices/2025/cloture/confirmation", json={"confirmation": True})
        assert closed.status_code == 200
        assert closed.json()["status"] == "CLOSED"

        again = client.post("/api/exercices/2025/cloture", json={})
        assert again.status_code == 409
        assert again.json()["error"] == "PERIOD_CLOSED"
