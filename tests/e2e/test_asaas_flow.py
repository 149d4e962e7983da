"""
E2E tests for the registration payment flow against a real Asaas-compatible API.

These tests require the mock Asaas server to be running:
    uvicorn mock.asaas_server.main:app --port 8001

Set MOCK_ASAAS_URL to point at another server (e.g. the Asaas sandbox).
"""

import os
import pytest
from fastapi.testclient import TestClient
from retiro_gateway.api.dependencies import get_payment_context
from retiro_gateway.infrastructure.clients.asaas import AsaasClient

MOCK_ASAAS_URL = os.environ.get("MOCK_ASAAS_URL", "http://localhost:8001")


@pytest.fixture
def asaas_client(client: TestClient, make_context) -> TestClient:
    """Test client whose payment context talks to the Asaas server over HTTP"""
    gateway = AsaasClient(base_url=MOCK_ASAAS_URL, api_key="e2e")
    client.app.dependency_overrides[get_payment_context] = lambda: make_context(gateway)
    return client


def _register(client: TestClient) -> int:
    response = client.post(
        "/v1/registrations",
        json={"nome": "Lucas Souza", "cpf": "111.444.777-35", "email": "lucas@example.com", "campus": "Sul"},
    )
    assert response.status_code == 201
    return response.json()["id"]


@pytest.mark.integration
def test_boleto_installments_then_payment(asaas_client: TestClient):
    """
    Participant pays in three boletos, the first one is received.
    Expected: three charges with boleto links, registration settled after the webhook
    """
    registration_id = _register(asaas_client)

    response = asaas_client.post(
        f"/v1/registrations/{registration_id}/payments",
        json={"billing_type": "BOLETO", "installments": 3},
    )

    assert response.status_code == 201
    installments = response.json()["installments"]
    assert len(installments) == 3
    assert all(i["external_id"].startswith("pay_") for i in installments)
    assert all(i["document_url"] for i in installments)

    webhook = asaas_client.post(
        "/v1/webhooks/asaas",
        json={"event": "PAYMENT_RECEIVED", "payment": {"id": installments[0]["external_id"], "status": "RECEIVED"}},
    )

    assert webhook.status_code == 200
    assert webhook.json()["registration_status"] == "quitado"

    slots = asaas_client.get("/v1/slots").json()
    assert slots["paid"] == 1


@pytest.mark.integration
def test_pix_single_charge(asaas_client: TestClient):
    """
    Participant pays by PIX.
    Expected: one charge for the full fee
    """
    registration_id = _register(asaas_client)

    response = asaas_client.post(f"/v1/registrations/{registration_id}/payments", json={"billing_type": "PIX"})

    assert response.status_code == 201
    installments = response.json()["installments"]
    assert len(installments) == 1
    assert installments[0]["amount_cents"] == 45_000
