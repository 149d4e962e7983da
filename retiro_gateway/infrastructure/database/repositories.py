"""Data access layer for registrations, installments and leads"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional
from sqlalchemy import case, func
from sqlalchemy.orm import Session
from retiro_gateway.infrastructure.database.models import Registration, Installment, Lead
from retiro_gateway.domain.models import RegistrationStatus


class RegistrationRepository:
    """Repository for retreat registrations"""

    def __init__(self, db: Session):
        self.db = db

    def create_registration(self, **fields: Any) -> Registration:
        """Persist a new registration in pending status"""
        db_registration = Registration(status=RegistrationStatus.PENDING.value, checkin=False, **fields)
        self.db.add(db_registration)
        self.db.flush()  # Get ID without committing
        return db_registration

    def get_registration(self, registration_id: int) -> Optional[Registration]:
        return self.db.get(Registration, registration_id)

    def lock_registration(self, registration_id: int) -> Optional[Registration]:
        """Fetch a registration holding a row lock until the transaction ends"""
        return (
            self.db.query(Registration)
            .filter(Registration.id == registration_id)
            .with_for_update()
            .populate_existing()
            .first()
        )

    def list_registrations(self) -> List[Registration]:
        """All registrations, newest first"""
        return self.db.query(Registration).order_by(Registration.id.desc()).all()

    def update_registration_status(self, registration_id: int, status: RegistrationStatus) -> bool:
        updated = (
            self.db.query(Registration)
            .filter(Registration.id == registration_id)
            .update({Registration.status: status.value}, synchronize_session="fetch")
        )
        return updated > 0

    def update_checkin(self, registration_id: int, value: bool) -> bool:
        updated = (
            self.db.query(Registration)
            .filter(Registration.id == registration_id)
            .update({Registration.checkin: value}, synchronize_session="fetch")
        )
        return updated > 0

    def set_billing_started(self, registration_id: int, started_at: Optional[datetime]) -> bool:
        """Set or clear the in-progress charge marker"""
        updated = (
            self.db.query(Registration)
            .filter(Registration.id == registration_id)
            .update({Registration.cobranca_iniciada_em: started_at}, synchronize_session="fetch")
        )
        return updated > 0

    def update_identity(self, registration: Registration, fields: Dict[str, Any]) -> Registration:
        """Apply administrative edits to identity fields"""
        for name, value in fields.items():
            setattr(registration, name, value)
        self.db.flush()
        return registration

    def delete_registration(self, registration: Registration) -> None:
        """Delete a registration and, by cascade, its installments"""
        self.db.delete(registration)
        self.db.flush()

    def count_slots(self) -> tuple[int, int]:
        """Return (total registrations, settled registrations)"""
        total, settled = self.db.query(
            func.count(Registration.id),
            func.sum(case((Registration.status == RegistrationStatus.SETTLED.value, 1), else_=0)),
        ).one()
        return total or 0, int(settled or 0)


class InstallmentRepository:
    """Repository for installment charges"""

    def __init__(self, db: Session):
        self.db = db

    def insert_installment(
        self,
        registration_id: int,
        index: int,
        amount_cents: int,
        due_date: date,
        billing_type: str,
        external_payment_id: Optional[str] = None,
        status: str = "PENDING",
        boleto_url: Optional[str] = None,
    ) -> Installment:
        """Persist one installment of a registration's schedule"""
        db_installment = Installment(
            inscrito_id=registration_id,
            parcela=index,
            valor_cents=amount_cents,
            vencimento=due_date,
            billing_type=billing_type,
            external_payment_id=external_payment_id,
            status=status,
            boleto_url=boleto_url,
        )
        self.db.add(db_installment)
        self.db.flush()
        return db_installment

    def list_installments(self, registration_id: int) -> List[Installment]:
        """Fetch installments ordered by index"""
        return (
            self.db.query(Installment)
            .filter(Installment.inscrito_id == registration_id)
            .order_by(Installment.parcela)
            .all()
        )

    def get_installment_by_external_id(self, external_payment_id: str) -> Optional[Installment]:
        return (
            self.db.query(Installment)
            .filter(Installment.external_payment_id == external_payment_id)
            .order_by(Installment.id)
            .first()
        )

    def update_installment_status(self, external_payment_id: str, status: str) -> int:
        """Overwrite the raw status of every installment carrying the external id"""
        return (
            self.db.query(Installment)
            .filter(Installment.external_payment_id == external_payment_id)
            .update({Installment.status: status}, synchronize_session="fetch")
        )


class LeadRepository:
    """Repository for leads"""

    def __init__(self, db: Session):
        self.db = db

    def upsert_lead(self, email: str, nome: Optional[str], telefone: Optional[str]) -> tuple[Lead, bool]:
        """Insert or update a lead by e-mail; returns (lead, created)"""
        lead = self.db.query(Lead).filter(Lead.email == email).first()
        created = lead is None
        if created:
            lead = Lead(email=email, nome=nome, telefone=telefone)
            self.db.add(lead)
        else:
            if nome:
                lead.nome = nome
            if telefone:
                lead.telefone = telefone
        self.db.flush()
        return lead, created
