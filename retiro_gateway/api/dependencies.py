"""Dependency injection for FastAPI endpoints"""

from fastapi import Depends, Request
from sqlalchemy.orm import Session
from retiro_gateway.infrastructure.clients.asaas import AsaasClient
from retiro_gateway.infrastructure.clients.backup import BackupClient
from retiro_gateway.infrastructure.database.session import get_db
from retiro_gateway.services.context import PaymentContext


def get_request_id(request: Request) -> str:
    """Extract request ID from request state"""
    return getattr(request.state, "request_id", "unknown")


def get_asaas_client() -> AsaasClient:
    """Provide Asaas API client instance"""
    return AsaasClient()


def get_backup_client() -> BackupClient:
    """Provide backup webhook client instance"""
    return BackupClient()


def get_payment_context(
    db: Session = Depends(get_db),
    gateway: AsaasClient = Depends(get_asaas_client),
) -> PaymentContext:
    """Bundle the request's session and gateway with campaign settings"""
    return PaymentContext.from_settings(db, gateway)
