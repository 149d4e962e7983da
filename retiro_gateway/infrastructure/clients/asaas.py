"""Asaas payment gateway HTTP client for customers and charges"""

import httpx
from datetime import date
from decimal import Decimal
from typing import Optional
from retiro_gateway.domain.models import BillingType, ChargeResult
from retiro_gateway.domain.exceptions import UpstreamChargeFailure
from retiro_gateway.config import settings

MAX_ERROR_LENGTH = 300


def cents_to_reais(amount_cents: int) -> float:
    """Asaas takes values as decimal reais"""
    return float(Decimal(amount_cents) / 100)


def _error_detail(response: httpx.Response) -> str:
    """Extract the gateway's error description, truncated"""
    try:
        errors = response.json().get("errors") or []
        detail = "; ".join(e.get("description", "") for e in errors if isinstance(e, dict))
    except (ValueError, AttributeError):
        detail = ""
    detail = detail or response.text or f"HTTP {response.status_code}"
    return detail[:MAX_ERROR_LENGTH]


class AsaasClient:
    """Client for the Asaas customers/payments API"""

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
    ):
        self.base_url = (base_url or settings.asaas_api_base).rstrip("/")
        self.api_key = api_key if api_key is not None else settings.asaas_api_key
        self.timeout = timeout or settings.http_timeout_seconds

    @property
    def headers(self) -> dict:
        return {"Content-Type": "application/json", "access_token": self.api_key}

    async def _post(self, path: str, payload: dict) -> dict:
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            try:
                response = await client.post(f"{self.base_url}{path}", json=payload, headers=self.headers)
                if response.is_error:
                    raise UpstreamChargeFailure(_error_detail(response))
                return response.json()

            except httpx.TimeoutException as e:
                raise UpstreamChargeFailure(f"Asaas timeout after {self.timeout}s") from e
            except httpx.RequestError as e:
                raise UpstreamChargeFailure(f"Asaas unreachable: {e}"[:MAX_ERROR_LENGTH]) from e
            except ValueError as e:
                raise UpstreamChargeFailure("Invalid response from Asaas") from e

    async def create_customer(
        self,
        name: str,
        cpf: str,
        email: str,
        phone: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> str:
        """
        Register a payer with the gateway.

        Returns:
            Gateway customer id (cus_...)

        Raises:
            UpstreamChargeFailure: On timeout, HTTP errors, or invalid response
        """
        payload = {"name": name, "cpfCnpj": cpf, "email": email}
        if phone:
            payload["mobilePhone"] = phone
        if reference:
            payload["externalReference"] = reference

        data = await self._post("/customers", payload)
        try:
            return data["id"]
        except (KeyError, TypeError) as e:
            raise UpstreamChargeFailure("Asaas customer response without id") from e

    async def create_charge(
        self,
        customer_ref: str,
        billing_type: BillingType,
        amount_cents: int,
        due_date: date,
        description: Optional[str] = None,
        reference: Optional[str] = None,
    ) -> ChargeResult:
        """
        Create a PIX or boleto charge.

        Raises:
            UpstreamChargeFailure: On timeout, HTTP errors, or invalid response
        """
        payload = {
            "customer": customer_ref,
            "billingType": BillingType(billing_type).value,
            "value": cents_to_reais(amount_cents),
            "dueDate": due_date.isoformat(),
        }
        if description:
            payload["description"] = description
        if reference:
            payload["externalReference"] = reference

        data = await self._post("/payments", payload)
        try:
            return ChargeResult(
                external_id=data["id"],
                status=data.get("status") or "PENDING",
                document_url=data.get("bankSlipUrl") or data.get("invoiceUrl"),
            )
        except (KeyError, TypeError) as e:
            raise UpstreamChargeFailure("Asaas payment response without id") from e
