"""Registration rules - CPF normalization, check-in tokens and slot accounting"""

import re
from datetime import datetime


def normalize_cpf(cpf: str | None) -> str:
    """Keep only the digits of a CPF ("123.456.789-09" → "12345678909")"""
    return re.sub(r"\D", "", cpf or "")


def make_checkin_token(cpf_norm: str, created_at: datetime) -> str:
    """Payload encoded in the participant's check-in QR code"""
    return f"{cpf_norm}-{int(created_at.timestamp() * 1000)}"


def remaining_slots(limit: int, total_registrations: int) -> int:
    """Open places left, never negative"""
    return max(limit - total_registrations, 0)
