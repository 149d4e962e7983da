"""Explicit collaborators handed to the billing and reconciliation services"""

from dataclasses import dataclass
from datetime import date
from typing import Optional
from sqlalchemy.orm import Session

from retiro_gateway.config import Settings, settings as default_settings
from retiro_gateway.domain.models import SettlementPolicy
from retiro_gateway.infrastructure.clients.asaas import AsaasClient
from retiro_gateway.utils.date_utils import local_today


@dataclass
class PaymentContext:
    """Store session, gateway client and campaign rules for one request"""

    db: Session
    gateway: Optional[AsaasClient]
    fee_cents: int
    deadline: date
    min_lead_days: int
    settlement_policy: SettlementPolicy = SettlementPolicy.ANY
    timezone: str = "America/Sao_Paulo"
    claim_ttl_seconds: int = 300

    @classmethod
    def from_settings(
        cls,
        db: Session,
        gateway: Optional[AsaasClient] = None,
        config: Settings | None = None,
    ) -> "PaymentContext":
        config = config or default_settings
        return cls(
            db=db,
            gateway=gateway,
            fee_cents=config.registration_fee_cents,
            deadline=config.campaign_deadline,
            min_lead_days=config.min_lead_days,
            settlement_policy=SettlementPolicy(config.settlement_policy),
            timezone=config.timezone,
            claim_ttl_seconds=config.billing_claim_ttl_seconds,
        )

    def today(self) -> date:
        return local_today(self.timezone)
