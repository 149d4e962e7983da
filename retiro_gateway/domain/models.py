"""Domain models - pure Python dataclasses and enums representing business entities"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional


class RegistrationStatus(str, Enum):
    """Aggregate payment state of a registration (stored values)"""

    PENDING = "pendente"
    PARTIALLY_PAID = "parcial"
    SETTLED = "quitado"
    CANCELED = "cancelado"


class BillingType(str, Enum):
    """Charge kinds offered by the payment gateway"""

    PIX = "PIX"
    BOLETO = "BOLETO"


class PaymentOutcome(str, Enum):
    """Local vocabulary for the gateway's raw payment statuses"""

    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"
    CANCELED = "canceled"
    UNKNOWN = "unknown"


class SettlementPolicy(str, Enum):
    """When a paid installment settles its registration"""

    ANY = "any"  # first paid installment settles
    ALL = "all"  # every installment must be paid


# Gateway status strings, compared upper-cased
_RAW_STATUS_OUTCOMES = {
    "RECEIVED": PaymentOutcome.PAID,
    "CONFIRMED": PaymentOutcome.PAID,
    "RECEIVED_IN_CASH": PaymentOutcome.PAID,
    "PENDING": PaymentOutcome.PENDING,
    "AWAITING_RISK_ANALYSIS": PaymentOutcome.PENDING,
    "OVERDUE": PaymentOutcome.OVERDUE,
    "REFUNDED": PaymentOutcome.CANCELED,
    "DELETED": PaymentOutcome.CANCELED,
    "CANCELED": PaymentOutcome.CANCELED,
    "CANCELLED": PaymentOutcome.CANCELED,
}


def translate_status(raw_status: Optional[str]) -> PaymentOutcome:
    """Map a raw gateway status (any casing) into PaymentOutcome"""
    if not raw_status:
        return PaymentOutcome.UNKNOWN
    return _RAW_STATUS_OUTCOMES.get(raw_status.strip().upper(), PaymentOutcome.UNKNOWN)


@dataclass(frozen=True)
class PlannedInstallment:
    """Single entry of a planned payment schedule"""

    index: int
    amount_cents: int
    due_date: date


@dataclass
class ChargeResult:
    """Remote charge created by the payment gateway"""

    external_id: str
    status: str = "PENDING"
    document_url: Optional[str] = None
