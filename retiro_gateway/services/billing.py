"""Charge fan-out - turns a planned schedule into persisted remote charges"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence
from sqlalchemy.exc import SQLAlchemyError

from retiro_gateway.domain.exceptions import (
    ChargesInProgress,
    DomainException,
    NotFound,
    RegistrationCanceled,
    ScheduleConflict,
    StoreFailure,
    UpstreamChargeFailure,
)
from retiro_gateway.domain.installments import plan_schedule
from retiro_gateway.domain.models import BillingType, PlannedInstallment, RegistrationStatus
from retiro_gateway.infrastructure.database.models import Installment, Registration
from retiro_gateway.infrastructure.database.repositories import InstallmentRepository, RegistrationRepository
from retiro_gateway.infrastructure.observability.metrics import charge_counter, charge_failure_counter
from retiro_gateway.services.context import PaymentContext

logger = logging.getLogger(__name__)


@dataclass
class BillingOutcome:
    """Installments of a registration after a charge request"""

    registration_id: int
    billing_type: BillingType
    installments: List[Installment] = field(default_factory=list)
    created: List[Installment] = field(default_factory=list)
    failed_index: Optional[int] = None
    error: Optional[str] = None

    @property
    def complete(self) -> bool:
        return self.failed_index is None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _commit(ctx: PaymentContext, message: str) -> None:
    try:
        ctx.db.commit()
    except SQLAlchemyError as e:
        ctx.db.rollback()
        logger.error(f"{message}: {e}")
        raise StoreFailure(message) from e


def _check_resume(
    registration: Registration,
    plan: List[PlannedInstallment],
    existing: Dict[int, Installment],
) -> None:
    """Already issued installments must match the requested plan index by index"""
    planned_count = registration.parcelas_planejadas or len(existing)
    if planned_count != len(plan):
        raise ScheduleConflict(
            f"Registration {registration.id} already has a {planned_count}-installment schedule"
        )

    for planned in plan:
        issued = existing.get(planned.index)
        if issued is None:
            continue
        if issued.valor_cents != planned.amount_cents or issued.vencimento != planned.due_date:
            raise ScheduleConflict(
                f"Installment {planned.index} was already issued for "
                f"{issued.valor_cents} cents due {issued.vencimento.isoformat()}"
            )


def _claim(ctx: PaymentContext, registration: Registration) -> None:
    """Mark the registration as being charged; the caller holds its row lock"""
    started = registration.cobranca_iniciada_em
    now = _utcnow()
    if started is not None and now - started < timedelta(seconds=ctx.claim_ttl_seconds):
        raise ChargesInProgress(f"Charges for registration {registration.id} are already being issued")
    registration.cobranca_iniciada_em = now


def _release(ctx: PaymentContext, registration_id: int) -> None:
    try:
        RegistrationRepository(ctx.db).set_billing_started(registration_id, None)
        ctx.db.commit()
    except SQLAlchemyError as e:
        # Left in place, the marker expires after claim_ttl_seconds
        ctx.db.rollback()
        logger.error(f"Charge claim for registration {registration_id} not released: {e}")


async def _ensure_customer(ctx: PaymentContext, registration: Registration) -> str:
    """Reuse the stored gateway customer or register a new one"""
    if registration.asaas_customer_id:
        return registration.asaas_customer_id

    customer_id = await ctx.gateway.create_customer(
        name=registration.nome,
        cpf=registration.cpf_norm,
        email=registration.email,
        phone=registration.telefone,
        reference=str(registration.id),
    )
    registration.asaas_customer_id = customer_id
    _commit(ctx, f"Could not store customer for registration {registration.id}")
    return customer_id


async def _issue(
    ctx: PaymentContext,
    registration: Registration,
    billing_type: BillingType,
    plan: List[PlannedInstallment],
    remaining: List[PlannedInstallment],
    outcome: BillingOutcome,
) -> None:
    """Create and persist the remaining charges in order, stopping at the first gateway error"""
    registration_id = registration.id
    installments = InstallmentRepository(ctx.db)

    try:
        customer_id = await _ensure_customer(ctx, registration)
    except UpstreamChargeFailure as e:
        charge_failure_counter.labels(billing_type=billing_type.value).inc()
        logger.warning(f"Customer creation failed for registration {registration_id}: {e}")
        outcome.failed_index = remaining[0].index
        outcome.error = str(e)
        return

    for planned in remaining:
        try:
            charge = await ctx.gateway.create_charge(
                customer_ref=customer_id,
                billing_type=billing_type,
                amount_cents=planned.amount_cents,
                due_date=planned.due_date,
                description=f"Inscrição retiro - parcela {planned.index}/{len(plan)}",
                reference=f"{registration_id}-{planned.index}",
            )
        except UpstreamChargeFailure as e:
            charge_failure_counter.labels(billing_type=billing_type.value).inc()
            logger.warning(f"Charge {planned.index} failed for registration {registration_id}: {e}")
            outcome.failed_index = planned.index
            outcome.error = str(e)
            return

        try:
            installment = installments.insert_installment(
                registration_id=registration_id,
                index=planned.index,
                amount_cents=planned.amount_cents,
                due_date=planned.due_date,
                billing_type=billing_type.value,
                external_payment_id=charge.external_id,
                status=charge.status,
                boleto_url=charge.document_url,
            )
            if registration.status == RegistrationStatus.PENDING.value:
                registration.status = RegistrationStatus.PARTIALLY_PAID.value
        except SQLAlchemyError as e:
            ctx.db.rollback()
            raise StoreFailure(f"Could not persist installment {planned.index}") from e

        _commit(ctx, f"Could not persist installment {planned.index}")
        charge_counter.labels(billing_type=billing_type.value).inc()
        outcome.created.append(installment)


async def create_charges(
    ctx: PaymentContext,
    registration_id: int,
    billing_type: BillingType,
    count: int = 1,
    explicit_dates: Optional[Sequence[str | date]] = None,
    today: Optional[date] = None,
) -> BillingOutcome:
    """
    Plan a registration's installments and create one gateway charge per installment.

    Flow:
    1. Lock the registration, validate it and plan the schedule (no remote call on bad input)
    2. Compare with installments already persisted: a retry must ask for the same
       schedule, and then resumes at the first missing index
    3. Claim the registration so concurrent requests get ChargesInProgress, commit
    4. Ensure a gateway customer exists for the payer
    5. For each remaining installment, in order: create the charge, persist it, commit
    6. Stop at the first gateway failure, keeping earlier installments, and release the claim

    PIX always yields a single installment due on the campaign deadline.

    Raises:
        NotFound: Registration does not exist
        RegistrationCanceled: Registration was canceled by an admin
        ChargesInProgress: Another request is issuing this registration's charges
        ScheduleConflict: Bad dates, another billing type, or a schedule other
            than the one already partly issued
        InvalidScheduleInput: Bad installment count or dates
        StoreFailure: Installment could not be persisted (creation halts there)
    """
    billing_type = BillingType(billing_type)
    registrations = RegistrationRepository(ctx.db)
    installments = InstallmentRepository(ctx.db)

    try:
        registration = registrations.lock_registration(registration_id)
        if registration is None:
            raise NotFound(f"Registration {registration_id} not found")
        if registration.status == RegistrationStatus.CANCELED.value:
            raise RegistrationCanceled(f"Registration {registration_id} is canceled")

        if billing_type is BillingType.PIX:
            count = 1
            explicit_dates = None

        plan = plan_schedule(
            ctx.fee_cents,
            count,
            today or ctx.today(),
            ctx.deadline,
            ctx.min_lead_days,
            explicit_dates,
        )

        existing = {inst.parcela: inst for inst in installments.list_installments(registration_id)}
        if any(inst.billing_type != billing_type.value for inst in existing.values()):
            raise ScheduleConflict(f"Registration {registration_id} already has charges of another billing type")
        if existing:
            _check_resume(registration, plan, existing)

        remaining = [planned for planned in plan if planned.index not in existing]
        if remaining:
            _claim(ctx, registration)
            registration.parcelas_planejadas = len(plan)

    except DomainException:
        ctx.db.rollback()  # Releases the row lock
        raise
    except SQLAlchemyError as e:
        ctx.db.rollback()
        logger.error(f"Could not load registration {registration_id}: {e}")
        raise StoreFailure(f"Could not load registration {registration_id}") from e

    _commit(ctx, f"Could not claim registration {registration_id}")

    outcome = BillingOutcome(registration_id=registration_id, billing_type=billing_type)
    if remaining:
        try:
            await _issue(ctx, registration, billing_type, plan, remaining, outcome)
        finally:
            _release(ctx, registration_id)

    outcome.installments = installments.list_installments(registration_id)
    return outcome
