"""Tests for the /invoices API."""

import pytest
from fastapi.testclient import TestClient

from tests.constants import (
    DEBTOR_UUID,
    FETCHABLE_INVOICE_UUID,
    NUM_SEEDED_INVOICES,
    OTHER_DEBTOR_UUID,
    SUPERUSER,
)


def post_invoice(client: TestClient, invoice: dict):
    return client.post("/invoices", json={"invoice": invoice})


def mask(invoice: dict, key: str) -> dict:
    return {k: v for k, v in invoice.items() if k != key}


class TestReadInvoices:
    """Tests for listing and fetching invoices."""

    def test_list_invoices(self, client: TestClient):
        """GET /invoices returns a list of patient invoices."""
        response = client.get("/invoices")
        assert response.status_code == 200
        assert len(response.json()) == NUM_SEEDED_INVOICES

    def test_get_invoice(self, client: TestClient):
        """GET /invoices/:uuid returns a valid patient invoice."""
        response = client.get(f"/invoices/{FETCHABLE_INVOICE_UUID}")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/json")

        invoice = response.json()
        assert {"uuid", "cost", "date", "items"} <= invoice.keys()
        assert invoice["items"]
        assert {"uuid", "code", "quantity"} <= invoice["items"][0].keys()
        assert invoice["cost"] == 75
        assert invoice["reference_text"] == "IV.TPA.1"

    def test_get_invoice_unknown(self, client: TestClient):
        """GET /invoices/:uuid returns 404 for an invalid patient invoice."""
        response = client.get("/invoices/unknown")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "ERRORS.NOT_FOUND"

    def test_get_invoice_well_formed_but_missing(self, client: TestClient):
        response = client.get("/invoices/00000000000000000000000000000000")
        assert response.status_code == 404

    def test_requires_api_key(self, anonymous_client: TestClient):
        assert anonymous_client.get("/invoices").status_code == 401
        assert anonymous_client.get("/invoices", headers={"X-API-Key": "nope"}).status_code == 401

    def test_health_is_public(self, anonymous_client: TestClient):
        response = anonymous_client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"


class TestCreateInvoices:
    """Patient invoicing scenarios."""

    def test_simple_invoice(self, client: TestClient, simple_invoice: dict):
        """Cost and user are computed by the server, not taken from the client."""
        response = post_invoice(client, simple_invoice)
        assert response.status_code == 201

        response = client.get(f"/invoices/{response.json()['uuid']}")
        assert response.status_code == 200

        invoice = response.json()
        assert invoice["cost"] == 35.14
        assert len(invoice["items"]) == len(simple_invoice["items"])
        assert invoice["user_id"] == SUPERUSER

    def test_inventory_price_has_no_effect(self, client: TestClient, simple_invoice: dict):
        simple_invoice["items"][0]["inventory_price"] = 1000
        response = post_invoice(client, simple_invoice)
        assert response.json()["cost"] == 35.14

    def test_client_uuid_is_kept(self, client: TestClient, simple_invoice: dict):
        simple_invoice["uuid"] = "6c2b1c4e-8f5d-4d2a-9a57-0b6e3f1d2c3a"
        response = post_invoice(client, simple_invoice)
        assert response.status_code == 201
        assert response.json()["uuid"] == "6C2B1C4E8F5D4D2A9A570B6E3F1D2C3A"

    def test_invoicing_fee(self, client: TestClient, invoicing_fee_invoice: dict):
        """Invoice cost ($100) + 20% ($20) of invoicing fee."""
        response = post_invoice(client, invoicing_fee_invoice)
        assert response.status_code == 201

        invoice = client.get(f"/invoices/{response.json()['uuid']}").json()
        assert invoice["cost"] == 120
        assert len(invoice["items"]) == 2
        assert invoice["invoicing_fees"][0]["amount"] == 20

    def test_subsidy(self, client: TestClient, subsidy_invoice: dict):
        """Invoice cost ($80.29) - 50% ($40.145) of subsidy."""
        response = post_invoice(client, subsidy_invoice)
        assert response.status_code == 201

        invoice = client.get(f"/invoices/{response.json()['uuid']}").json()
        assert invoice["cost"] == 40.145
        assert len(invoice["items"]) == 3
        assert invoice["subsidies"][0]["amount"] == 40.145

    def test_references_increment_per_project(self, client: TestClient, simple_invoice: dict):
        first = post_invoice(client, simple_invoice).json()
        second = post_invoice(client, simple_invoice).json()
        # seeded project 1 holds references 1 to 3
        assert first["reference_text"] == "IV.TPA.4"
        assert second["reference_text"] == "IV.TPA.5"

    @pytest.mark.parametrize("missing", ["debtor_uuid", "date", "items", "description"])
    def test_missing_required_field(self, client: TestClient, simple_invoice: dict, missing: str):
        response = post_invoice(client, mask(simple_invoice, missing))
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "ERRORS.BAD_REQUEST"

    def test_empty_invoice(self, client: TestClient):
        assert post_invoice(client, {}).status_code == 400

    def test_missing_invoice_key(self, client: TestClient, simple_invoice: dict):
        assert client.post("/invoices", json=simple_invoice).status_code == 400

    def test_empty_items(self, client: TestClient, simple_invoice: dict):
        simple_invoice["items"] = []
        assert post_invoice(client, simple_invoice).status_code == 400

    def test_rejected_invoices_are_not_stored(self, client: TestClient, simple_invoice: dict):
        post_invoice(client, mask(simple_invoice, "debtor_uuid"))
        assert len(client.get("/invoices").json()) == NUM_SEEDED_INVOICES

    def test_unknown_debtor(self, client: TestClient, simple_invoice: dict):
        simple_invoice["debtor_uuid"] = "3BE232F9A4B94AF6984C5D3F87D5C100"
        response = post_invoice(client, simple_invoice)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "ERRORS.UNKNOWN_REFERENCE"

    def test_malformed_debtor(self, client: TestClient, simple_invoice: dict):
        simple_invoice["debtor_uuid"] = "3BE232F9A4B94AF6984CJ5D3F87D5C107"
        assert post_invoice(client, simple_invoice).status_code == 400

    def test_unknown_invoicing_fee(self, client: TestClient, invoicing_fee_invoice: dict):
        invoicing_fee_invoice["invoicingFees"] = [99]
        assert post_invoice(client, invoicing_fee_invoice).status_code == 400

    def test_two_subsidies_rejected(self, client: TestClient, subsidy_invoice: dict):
        subsidy_invoice["subsidies"] = [1, 2]
        response = post_invoice(client, subsidy_invoice)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "ERRORS.TOO_MANY_SUBSIDIES"

    def test_repeated_subsidy_rejected(self, client: TestClient, subsidy_invoice: dict):
        subsidy_invoice["subsidies"] = [1, 1]
        response = post_invoice(client, subsidy_invoice)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "ERRORS.BAD_REQUEST"

    def test_repeated_invoicing_fee_rejected(self, client: TestClient, invoicing_fee_invoice: dict):
        invoicing_fee_invoice["invoicingFees"] = [1, 1]
        assert post_invoice(client, invoicing_fee_invoice).status_code == 400

    def test_quantity_too_large(self, client: TestClient, simple_invoice: dict):
        simple_invoice["items"][0]["quantity"] = 10**16
        response = post_invoice(client, simple_invoice)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "ERRORS.BAD_REQUEST"

    def test_cost_too_large(self, client: TestClient, simple_invoice: dict):
        simple_invoice["items"][0]["quantity"] = 10**14
        simple_invoice["items"][0]["transaction_price"] = 100
        response = post_invoice(client, simple_invoice)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "ERRORS.AMOUNT_OUT_OF_RANGE"
        assert len(client.get("/invoices").json()) == NUM_SEEDED_INVOICES

    def test_duplicate_uuid(self, client: TestClient, simple_invoice: dict):
        simple_invoice["uuid"] = FETCHABLE_INVOICE_UUID
        response = post_invoice(client, simple_invoice)
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "ERRORS.DUPLICATE_RECORD"


class TestDeleteTransactions:
    """Tests for DELETE /transactions/:uuid."""

    def test_delete_invoice(self, client: TestClient, simple_invoice: dict):
        invoice_uuid = post_invoice(client, simple_invoice).json()["uuid"]

        response = client.delete(f"/transactions/{invoice_uuid}")
        assert response.status_code == 201

        assert client.get(f"/invoices/{invoice_uuid}").status_code == 404

    def test_delete_unknown(self, client: TestClient):
        assert client.delete("/transactions/unknown").status_code == 404
        assert client.delete("/transactions/00000000000000000000000000000000").status_code == 404

    def test_delete_twice(self, client: TestClient):
        assert client.delete(f"/transactions/{FETCHABLE_INVOICE_UUID}").status_code == 201
        assert client.delete(f"/transactions/{FETCHABLE_INVOICE_UUID}").status_code == 404


class TestSearchInvoices:
    """Search interface for the invoices table, after the invoicing scenarios."""

    @pytest.fixture
    def scenario(self, client: TestClient, simple_invoice, invoicing_fee_invoice, subsidy_invoice) -> TestClient:
        """Create three invoices and delete the simple one."""
        simple_uuid = post_invoice(client, simple_invoice).json()["uuid"]
        post_invoice(client, invoicing_fee_invoice)
        post_invoice(client, subsidy_invoice)
        client.delete(f"/transactions/{simple_uuid}")
        return client

    def test_no_filters_returns_all(self, scenario: TestClient):
        response = scenario.get("/invoices")
        assert response.status_code == 200
        assert len(response.json()) == NUM_SEEDED_INVOICES + 3 - 1

    def test_debtor_filter(self, scenario: TestClient):
        response = scenario.get(f"/invoices?debtor_uuid={DEBTOR_UUID}")
        assert len(response.json()) == 6

    def test_debtor_without_invoices(self, scenario: TestClient):
        assert scenario.get(f"/invoices?debtor_uuid={OTHER_DEBTOR_UUID}").json() == []

    @pytest.mark.parametrize(
        "query, expected",
        [
            ("cost=0", 0),
            ("cost=75", 1),
            ("cost=75&project_id=1", 1),
            ("cost=15&project_id=1", 0),
            ("cost=120", 1),
            ("cost=40.145", 1),
        ],
    )
    def test_cost_filters(self, scenario: TestClient, query: str, expected: int):
        response = scenario.get(f"/invoices?{query}")
        assert response.status_code == 200
        assert len(response.json()) == expected

    def test_reference_filter(self, scenario: TestClient):
        rows = scenario.get("/invoices?reference=IV.TPA.1").json()
        assert len(rows) == 1
        assert rows[0]["cost"] == 75

    def test_date_and_description_filters(self, scenario: TestClient):
        rows = scenario.get("/invoices?date_from=2016-01-28&date_to=2016-01-28").json()
        assert len(rows) == 2
        rows = scenario.get("/invoices?description=subsidy").json()
        assert len(rows) == 1

    def test_limit(self, scenario: TestClient):
        assert len(scenario.get("/invoices?limit=2").json()) == 2

    def test_invalid_filter_value(self, scenario: TestClient):
        assert scenario.get("/invoices?cost=abc").status_code == 400


class TestReferenceData:
    def test_invoicing_fees(self, client: TestClient):
        fees = client.get("/invoicing_fees").json()
        assert fees[0] == {"id": 1, "label": "Test Invoicing Fee", "description": "Example invoicing fee", "value": 20.0}

    def test_subsidies(self, client: TestClient):
        subsidies = client.get("/subsidies").json()
        assert [s["value"] for s in subsidies] == [50.0, 100.0]
