"""Unit tests for registration rules and status vocabulary"""

import pytest
from datetime import datetime, timezone
from retiro_gateway.domain.models import PaymentOutcome, translate_status
from retiro_gateway.domain.registrations import make_checkin_token, normalize_cpf, remaining_slots


def test_normalize_cpf():
    assert normalize_cpf("123.456.789-09") == "12345678909"
    assert normalize_cpf(" 123 456 789 09 ") == "12345678909"
    assert normalize_cpf(None) == ""


def test_checkin_token_uses_normalized_cpf_and_millis():
    created_at = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    token = make_checkin_token("12345678909", created_at)

    assert token == "12345678909-1767268800000"


def test_remaining_slots_never_negative():
    assert remaining_slots(115, 0) == 115
    assert remaining_slots(115, 100) == 15
    assert remaining_slots(115, 120) == 0


@pytest.mark.parametrize(
    "raw, outcome",
    [
        ("RECEIVED", PaymentOutcome.PAID),
        ("confirmed", PaymentOutcome.PAID),
        ("Received_In_Cash", PaymentOutcome.PAID),
        ("PENDING", PaymentOutcome.PENDING),
        ("OVERDUE", PaymentOutcome.OVERDUE),
        ("REFUNDED", PaymentOutcome.CANCELED),
        ("DELETED", PaymentOutcome.CANCELED),
        ("CHARGEBACK_REQUESTED", PaymentOutcome.UNKNOWN),
        ("", PaymentOutcome.UNKNOWN),
        (None, PaymentOutcome.UNKNOWN),
    ],
)
def test_translate_status(raw, outcome):
    """Test raw gateway statuses map into the local vocabulary"""
    assert translate_status(raw) is outcome
