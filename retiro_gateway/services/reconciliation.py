"""Payment reconciliation - applies gateway notifications to installments and registrations"""

import logging
from dataclasses import dataclass
from typing import Optional
from sqlalchemy.exc import SQLAlchemyError

from retiro_gateway.domain.models import (
    PaymentOutcome,
    RegistrationStatus,
    SettlementPolicy,
    translate_status,
)
from retiro_gateway.infrastructure.database.models import Registration
from retiro_gateway.infrastructure.database.repositories import InstallmentRepository, RegistrationRepository
from retiro_gateway.infrastructure.observability.logging import log_notification
from retiro_gateway.infrastructure.observability.metrics import record_notification, settlement_counter
from retiro_gateway.services.context import PaymentContext

logger = logging.getLogger(__name__)


@dataclass
class ReconciliationResult:
    """What a single notification changed"""

    external_id: str
    outcome: PaymentOutcome
    matched: bool = False
    registration_id: Optional[int] = None
    registration_status: Optional[RegistrationStatus] = None
    settled_now: bool = False
    error: Optional[str] = None


def _should_settle(
    policy: SettlementPolicy,
    installments: InstallmentRepository,
    registration: Registration,
) -> bool:
    if policy is SettlementPolicy.ANY:
        return True
    siblings = installments.list_installments(registration.id)
    # A schedule cut short by a gateway failure has fewer rows than planned
    planned_count = registration.parcelas_planejadas or len(siblings)
    if not siblings or len(siblings) < planned_count:
        return False
    return all(translate_status(s.status) is PaymentOutcome.PAID for s in siblings)


def apply_notification(ctx: PaymentContext, external_payment_id: str, raw_status: str) -> ReconciliationResult:
    """
    Apply one gateway status notification.

    Flow:
    1. Find the installment by external payment id (unknown id → no-op)
    2. Lock the parent registration row for the rest of the transaction
    3. Store the raw status verbatim on the installment
    4. If the payment is received/confirmed, settle the registration according
       to the settlement policy, unless it was canceled by an admin
    5. Commit installment and registration together

    Never raises: the gateway retries deliveries, so store errors are logged,
    rolled back and reported through `ReconciliationResult.error`.
    """
    outcome = translate_status(raw_status)
    result = ReconciliationResult(external_id=external_payment_id, outcome=outcome)
    installments = InstallmentRepository(ctx.db)
    registrations = RegistrationRepository(ctx.db)

    try:
        installment = installments.get_installment_by_external_id(external_payment_id)
        if installment is None:
            logger.info(f"Notification for unknown payment {external_payment_id}")
            record_notification(matched=False, error=False)
            return result

        registration_id = installment.inscrito_id
        registration = registrations.lock_registration(registration_id)

        installments.update_installment_status(external_payment_id, raw_status)
        result.matched = True
        result.registration_id = registration_id

        if registration is not None:
            try:
                current = RegistrationStatus(registration.status)
            except ValueError:
                logger.warning(f"Registration {registration_id} has unknown status {registration.status!r}")
                current = None

            if (
                current is not None
                and current is not RegistrationStatus.CANCELED
                and current is not RegistrationStatus.SETTLED
                and outcome is PaymentOutcome.PAID
                and _should_settle(ctx.settlement_policy, installments, registration)
            ):
                registrations.update_registration_status(registration_id, RegistrationStatus.SETTLED)
                current = RegistrationStatus.SETTLED
                result.settled_now = True

            result.registration_status = current

        ctx.db.commit()

    except SQLAlchemyError as e:
        ctx.db.rollback()
        logger.error(f"Notification for {external_payment_id} not applied: {e}")
        result.matched = False
        result.settled_now = False
        result.error = "store unavailable"
        record_notification(matched=False, error=True)
        return result

    if result.settled_now:
        settlement_counter.inc()
    record_notification(matched=True, error=False)
    log_notification(
        external_payment_id,
        raw_status,
        matched=True,
        registration_status=result.registration_status.value if result.registration_status else None,
    )
    return result
