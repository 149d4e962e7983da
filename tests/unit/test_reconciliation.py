"""Unit tests for payment notification reconciliation"""

from datetime import date
from unittest.mock import patch
from sqlalchemy.exc import OperationalError
from retiro_gateway.domain.models import BillingType, PaymentOutcome, RegistrationStatus, SettlementPolicy
from retiro_gateway.infrastructure.database.repositories import InstallmentRepository, RegistrationRepository
from retiro_gateway.services.billing import create_charges
from retiro_gateway.services.reconciliation import apply_notification
from tests.conftest import FakeGateway


def _add_installments(db, registration_id, count=1):
    repo = InstallmentRepository(db)
    for index in range(1, count + 1):
        repo.insert_installment(
            registration_id=registration_id,
            index=index,
            amount_cents=15_000,
            due_date=date(2026, index + 1, 1),
            billing_type="BOLETO",
            external_payment_id=f"pay_{registration_id}_{index}",
        )
    RegistrationRepository(db).update_registration_status(registration_id, RegistrationStatus.PARTIALLY_PAID)
    db.commit()


def _status(db, registration_id):
    db.expire_all()
    return RegistrationRepository(db).get_registration(registration_id).status


def test_received_settles_registration(db, registration, make_context):
    """Test RECEIVED is stored verbatim and settles the registration"""
    _add_installments(db, registration.id)

    result = apply_notification(make_context(), f"pay_{registration.id}_1", "RECEIVED")

    assert result.matched is True
    assert result.outcome is PaymentOutcome.PAID
    assert result.settled_now is True
    assert result.registration_status is RegistrationStatus.SETTLED
    installment = InstallmentRepository(db).get_installment_by_external_id(f"pay_{registration.id}_1")
    assert installment.status == "RECEIVED"
    assert _status(db, registration.id) == RegistrationStatus.SETTLED.value


def test_status_stored_with_gateway_casing(db, registration, make_context):
    """Test comparison is case-insensitive while storage keeps the raw value"""
    _add_installments(db, registration.id)

    result = apply_notification(make_context(), f"pay_{registration.id}_1", "confirmed")

    assert result.outcome is PaymentOutcome.PAID
    installment = InstallmentRepository(db).get_installment_by_external_id(f"pay_{registration.id}_1")
    assert installment.status == "confirmed"
    assert _status(db, registration.id) == RegistrationStatus.SETTLED.value


def test_notification_is_idempotent(db, registration, make_context):
    """Test a repeated delivery changes nothing further"""
    _add_installments(db, registration.id)
    ctx = make_context()

    first = apply_notification(ctx, f"pay_{registration.id}_1", "RECEIVED")
    second = apply_notification(ctx, f"pay_{registration.id}_1", "RECEIVED")

    assert first.settled_now is True
    assert second.settled_now is False
    assert second.registration_status is RegistrationStatus.SETTLED
    assert _status(db, registration.id) == RegistrationStatus.SETTLED.value


def test_unknown_external_id_is_noop(db, registration, make_context):
    _add_installments(db, registration.id)

    result = apply_notification(make_context(), "pay_does_not_exist", "RECEIVED")

    assert result.matched is False
    assert result.error is None
    assert _status(db, registration.id) == RegistrationStatus.PARTIALLY_PAID.value
    statuses = [i.status for i in InstallmentRepository(db).list_installments(registration.id)]
    assert statuses == ["PENDING"]


def test_canceled_registration_stays_canceled(db, registration, make_context):
    """Test admin cancel takes precedence over a later payment"""
    _add_installments(db, registration.id)
    RegistrationRepository(db).update_registration_status(registration.id, RegistrationStatus.CANCELED)
    db.commit()

    result = apply_notification(make_context(), f"pay_{registration.id}_1", "RECEIVED")

    assert result.matched is True
    assert result.settled_now is False
    assert result.registration_status is RegistrationStatus.CANCELED
    assert _status(db, registration.id) == RegistrationStatus.CANCELED.value
    installment = InstallmentRepository(db).get_installment_by_external_id(f"pay_{registration.id}_1")
    assert installment.status == "RECEIVED"


def test_non_paid_status_leaves_registration(db, registration, make_context):
    _add_installments(db, registration.id, count=2)

    result = apply_notification(make_context(), f"pay_{registration.id}_1", "OVERDUE")

    assert result.outcome is PaymentOutcome.OVERDUE
    assert result.settled_now is False
    assert _status(db, registration.id) == RegistrationStatus.PARTIALLY_PAID.value


def test_settled_registration_not_reverted(db, registration, make_context):
    _add_installments(db, registration.id, count=2)
    ctx = make_context()
    apply_notification(ctx, f"pay_{registration.id}_1", "RECEIVED")

    apply_notification(ctx, f"pay_{registration.id}_2", "OVERDUE")

    assert _status(db, registration.id) == RegistrationStatus.SETTLED.value


def test_all_policy_waits_for_every_installment(db, registration, make_context):
    """Test the all-paid policy settles only after the last sibling is paid"""
    _add_installments(db, registration.id, count=3)
    ctx = make_context(policy=SettlementPolicy.ALL)

    apply_notification(ctx, f"pay_{registration.id}_1", "RECEIVED")
    assert _status(db, registration.id) == RegistrationStatus.PARTIALLY_PAID.value

    apply_notification(ctx, f"pay_{registration.id}_3", "CONFIRMED")
    assert _status(db, registration.id) == RegistrationStatus.PARTIALLY_PAID.value

    result = apply_notification(ctx, f"pay_{registration.id}_2", "RECEIVED")
    assert result.settled_now is True
    assert _status(db, registration.id) == RegistrationStatus.SETTLED.value


def test_store_failure_degrades_to_noop(db, registration, make_context):
    """Test store errors are swallowed so the gateway keeps its retry loop"""
    _add_installments(db, registration.id)

    with patch.object(
        InstallmentRepository,
        "update_installment_status",
        side_effect=OperationalError("UPDATE parcelas", {}, Exception("database is locked")),
    ):
        result = apply_notification(make_context(), f"pay_{registration.id}_1", "RECEIVED")

    assert result.matched is False
    assert result.error is not None
    assert _status(db, registration.id) == RegistrationStatus.PARTIALLY_PAID.value


async def test_all_policy_ignores_schedule_cut_short(db, registration, make_context):
    """Test paying the only issued installment of a partial 3-installment schedule does not settle"""
    gateway = FakeGateway(fail_at=2)
    await create_charges(make_context(gateway), registration.id, BillingType.BOLETO, count=3)

    result = apply_notification(make_context(policy=SettlementPolicy.ALL), f"pay_{registration.id}-1", "RECEIVED")

    assert result.matched is True
    assert result.settled_now is False
    assert result.registration_status is RegistrationStatus.PARTIALLY_PAID
    assert _status(db, registration.id) == RegistrationStatus.PARTIALLY_PAID.value


async def test_all_policy_settles_after_resumed_schedule_paid(db, registration, make_context):
    gateway = FakeGateway(fail_at=2)
    await create_charges(make_context(gateway), registration.id, BillingType.BOLETO, count=3)
    gateway.fail_at = None
    await create_charges(make_context(gateway), registration.id, BillingType.BOLETO, count=3)
    ctx = make_context(policy=SettlementPolicy.ALL)

    results = [apply_notification(ctx, f"pay_{registration.id}-{i}", "CONFIRMED") for i in (1, 2, 3)]

    assert [r.settled_now for r in results] == [False, False, True]
    assert _status(db, registration.id) == RegistrationStatus.SETTLED.value
