"""Pytest fixtures for testing"""

import asyncio
import pytest
from datetime import date
from typing import Generator, List, Optional
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from retiro_gateway.api.main import create_app
from retiro_gateway.api.dependencies import get_backup_client, get_payment_context
from retiro_gateway.domain.exceptions import UpstreamChargeFailure
from retiro_gateway.infrastructure.clients.backup import BackupClient
from retiro_gateway.domain.models import BillingType, ChargeResult, RegistrationStatus, SettlementPolicy
from retiro_gateway.infrastructure.database.models import Base, Registration
from retiro_gateway.infrastructure.database.repositories import RegistrationRepository
from retiro_gateway.infrastructure.database.session import get_db
from retiro_gateway.services.context import PaymentContext


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TODAY = date(2026, 1, 1)
DEADLINE = date(2026, 4, 1)
FEE_CENTS = 45_000


class FakeGateway:
    """In-memory stand-in for AsaasClient"""

    def __init__(self, fail_at: Optional[int] = None, fail_customer: bool = False, yield_control: bool = False):
        self.fail_at = fail_at
        self.fail_customer = fail_customer
        self.yield_control = yield_control  # Suspend on every call like a real HTTP round trip
        self.customers: List[dict] = []
        self.charges: List[dict] = []

    async def create_customer(self, name, cpf, email, phone=None, reference=None) -> str:
        if self.yield_control:
            await asyncio.sleep(0)
        if self.fail_customer:
            raise UpstreamChargeFailure("CPF inválido")
        self.customers.append({"name": name, "cpf": cpf, "email": email})
        return f"cus_{len(self.customers)}"

    async def create_charge(
        self,
        customer_ref,
        billing_type,
        amount_cents,
        due_date,
        description=None,
        reference=None,
    ) -> ChargeResult:
        if self.yield_control:
            await asyncio.sleep(0)
        index = len(self.charges) + 1
        if self.fail_at is not None and index == self.fail_at:
            raise UpstreamChargeFailure("Não foi possível gerar a cobrança.")
        self.charges.append(
            {
                "customer": customer_ref,
                "billing_type": BillingType(billing_type),
                "amount_cents": amount_cents,
                "due_date": due_date,
                "reference": reference,
            }
        )
        document_url = f"https://asaas.test/b/pay_{index}" if billing_type == BillingType.BOLETO else None
        return ChargeResult(external_id=f"pay_{reference}", status="PENDING", document_url=document_url)


class FixedDateContext(PaymentContext):
    """PaymentContext pinned to TODAY"""

    def today(self) -> date:
        return TODAY


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def other_db(db: Session) -> Generator[Session, None, None]:
    """Second session on the test database, as used by a concurrent request"""
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def make_context(db: Session):
    """Build a PaymentContext with test campaign rules"""

    def _make(
        gateway=None,
        policy: SettlementPolicy = SettlementPolicy.ANY,
        session: Optional[Session] = None,
    ) -> PaymentContext:
        return FixedDateContext(
            db=session or db,
            gateway=gateway,
            fee_cents=FEE_CENTS,
            deadline=DEADLINE,
            min_lead_days=2,
            settlement_policy=policy,
        )

    return _make


@pytest.fixture
def registration(db: Session) -> Registration:
    """A pending registration"""
    registration = RegistrationRepository(db).create_registration(
        nome="Maria da Silva",
        cpf="123.456.789-09",
        cpf_norm="12345678909",
        nascimento="2001-05-20",
        email="maria@example.com",
        telefone="11999990000",
        campus="Centro",
    )
    db.commit()
    assert registration.status == RegistrationStatus.PENDING.value
    return registration


@pytest.fixture
def client(db: Session, gateway: FakeGateway, make_context) -> TestClient:
    """Create FastAPI test client with test database, fake gateway, pinned dates and no backup hook"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_context] = lambda: make_context(gateway)
    app.dependency_overrides[get_backup_client] = lambda: BackupClient(webhook_url="")
    return TestClient(app)
