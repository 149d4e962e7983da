"""Pydantic schemas for API request/response validation"""

from datetime import date
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, model_validator

from retiro_gateway.domain.models import BillingType, RegistrationStatus

TWO_PLACES = Decimal("0.01")


def cents_to_amount(amount_cents: int) -> Decimal:
    """Integer cents → two-place decimal for the API boundary"""
    return (Decimal(amount_cents) / 100).quantize(TWO_PLACES)


class RegistrationRequest(BaseModel):
    """Request body for POST /v1/registrations"""

    model_config = ConfigDict(populate_by_name=True)

    nome: str = Field(..., min_length=1, description="Full name")
    cpf: str = Field(..., min_length=1, description="CPF, punctuation allowed")
    email: str = Field(..., min_length=3, description="Contact e-mail")
    nascimento: Optional[str] = Field(None, description="Birth date as typed by the participant")
    telefone: Optional[str] = None
    frequenta_pv: Optional[str] = Field(None, alias="frequentaPV")
    campus: Optional[str] = None


class RegistrationCreated(BaseModel):
    """Response for POST /v1/registrations"""

    id: int


class SlotsResponse(BaseModel):
    """Response for GET /v1/slots"""

    total: int
    paid: int
    remaining: int


class PaymentRequest(BaseModel):
    """Request body for POST /v1/registrations/{id}/payments"""

    billing_type: BillingType
    installments: int = Field(1, ge=1, le=3, description="Number of installments (boleto only)")
    due_dates: Optional[List[str]] = Field(
        None,
        description="YYYY-MM-DD due dates for all but the last installment; omit for automatic spacing",
    )


class InstallmentSchema(BaseModel):
    """Single installment of a registration"""

    index: int
    due_date: date
    amount_cents: int
    amount: Decimal
    status: str
    billing_type: str
    external_id: Optional[str] = None
    document_url: Optional[str] = None

    @classmethod
    def from_row(cls, inst) -> "InstallmentSchema":
        return cls(
            index=inst.parcela,
            due_date=inst.vencimento,
            amount_cents=inst.valor_cents,
            amount=cents_to_amount(inst.valor_cents),
            status=inst.status,
            billing_type=inst.billing_type,
            external_id=inst.external_payment_id,
            document_url=inst.boleto_url,
        )


class ChargeFailure(BaseModel):
    """Installment where charge creation stopped"""

    index: int
    message: str


class PaymentResponse(BaseModel):
    """Response for POST /v1/registrations/{id}/payments"""

    registration_id: int
    billing_type: BillingType
    installments: List[InstallmentSchema]
    failure: Optional[ChargeFailure] = None


class AsaasPayment(BaseModel):
    """Subset of the Asaas payment object carried by webhooks"""

    model_config = ConfigDict(extra="ignore")

    id: str
    status: str


class NotificationRequest(BaseModel):
    """Asaas webhook body ({event, payment}) or a flat {externalId, status} pair"""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    event: Optional[str] = None
    payment: Optional[AsaasPayment] = None
    external_id: Optional[str] = Field(None, alias="externalId")
    status: Optional[str] = None

    @model_validator(mode="after")
    def _require_payment_reference(self) -> "NotificationRequest":
        if self.payment is None and not (self.external_id and self.status):
            raise ValueError("either payment{id,status} or externalId and status are required")
        return self

    @property
    def payment_id(self) -> str:
        return self.payment.id if self.payment else self.external_id

    @property
    def payment_status(self) -> str:
        return self.payment.status if self.payment else self.status


class NotificationResponse(BaseModel):
    """Response for POST /v1/webhooks/asaas"""

    received: bool = True
    matched: bool
    registration_status: Optional[RegistrationStatus] = None


class LeadRequest(BaseModel):
    """Request body for POST /v1/leads"""

    email: str = Field(..., min_length=3)
    nome: Optional[str] = None
    telefone: Optional[str] = None


class LeadResponse(BaseModel):
    """Response for POST /v1/leads"""

    id: int
    email: str
    created: bool


class RegistrationSchema(BaseModel):
    """Registration as listed on the admin panel"""

    id: int
    nome: str
    cpf: str
    nascimento: Optional[str] = None
    email: str
    telefone: Optional[str] = None
    frequenta_pv: Optional[str] = None
    campus: Optional[str] = None
    status: str
    checkin: bool
    checkin_token: Optional[str] = None
    criado_em: Optional[str] = None

    @classmethod
    def from_row(cls, registration) -> "RegistrationSchema":
        return cls(
            id=registration.id,
            nome=registration.nome,
            cpf=registration.cpf,
            nascimento=registration.nascimento,
            email=registration.email,
            telefone=registration.telefone,
            frequenta_pv=registration.frequenta_pv,
            campus=registration.campus,
            status=registration.status,
            checkin=bool(registration.checkin),
            checkin_token=registration.checkin_token,
            criado_em=registration.criado_em.isoformat() if registration.criado_em else None,
        )


class RegistrationUpdate(BaseModel):
    """Administrative edit of identity fields"""

    model_config = ConfigDict(populate_by_name=True)

    nome: Optional[str] = Field(None, min_length=1)
    cpf: Optional[str] = Field(None, min_length=1)
    nascimento: Optional[str] = None
    email: Optional[str] = Field(None, min_length=3)
    telefone: Optional[str] = None
    frequenta_pv: Optional[str] = Field(None, alias="frequentaPV")
    campus: Optional[str] = None


class StatusUpdate(BaseModel):
    """Request body for POST /v1/admin/registrations/{id}/status"""

    status: RegistrationStatus


class CheckinUpdate(BaseModel):
    """Request body for POST /v1/admin/registrations/{id}/checkin"""

    value: bool


class OkResponse(BaseModel):
    ok: bool = True
