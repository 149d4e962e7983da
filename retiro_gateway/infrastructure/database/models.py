"""SQLAlchemy ORM models for registrations, installments and leads"""

from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Boolean,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

from retiro_gateway.domain.models import RegistrationStatus

Base = declarative_base()


class Registration(Base):
    """Participant sign-up for the retreat"""

    __tablename__ = "inscritos"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nome = Column(Text, nullable=False)
    cpf = Column(Text, nullable=False)
    cpf_norm = Column(String(11), nullable=False, index=True)
    nascimento = Column(Text, nullable=True)
    email = Column(Text, nullable=False)
    telefone = Column(Text, nullable=True)
    frequenta_pv = Column(Text, nullable=True)
    campus = Column(Text, nullable=True)
    status = Column(Text, nullable=False, default=RegistrationStatus.PENDING.value)
    checkin = Column(Boolean, nullable=False, default=False)
    checkin_token = Column(Text, nullable=True)
    asaas_customer_id = Column(Text, nullable=True)
    parcelas_planejadas = Column(Integer, nullable=True)  # Installment count of the current schedule
    cobranca_iniciada_em = Column(DateTime, nullable=True)  # Set (UTC) while a charge fan-out runs
    criado_em = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    installments = relationship(
        "Installment",
        back_populates="registration",
        cascade="all, delete-orphan",
        order_by="Installment.parcela",
    )


class Installment(Base):
    """Individual charge within a registration's payment schedule"""

    __tablename__ = "parcelas"
    __table_args__ = (UniqueConstraint("inscrito_id", "parcela", name="uq_parcelas_inscrito_parcela"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    inscrito_id = Column(Integer, ForeignKey("inscritos.id", ondelete="CASCADE"), nullable=False, index=True)
    parcela = Column(Integer, nullable=False)
    valor_cents = Column(BigInteger, nullable=False)
    vencimento = Column(Date, nullable=False)
    status = Column(Text, nullable=False, default="PENDING")  # Raw gateway status
    billing_type = Column(Text, nullable=False)
    external_payment_id = Column(Text, nullable=True, index=True)
    boleto_url = Column(Text, nullable=True)
    criado_em = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    registration = relationship("Registration", back_populates="installments")


class Lead(Base):
    """Interested visitor captured before sign-up"""

    __tablename__ = "leads"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nome = Column(Text, nullable=True)
    email = Column(Text, nullable=False, unique=True)
    telefone = Column(Text, nullable=True)
    criado_em = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    atualizado_em = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
