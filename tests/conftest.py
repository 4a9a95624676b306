"""Pytest fixtures for testing"""

import os

# Must be set before cuotas_gateway.config is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ["CONTRACT_EVENTS_WEBHOOK_URL"] = ""

import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from cuotas_gateway.api.dependencies import get_contract_service
from cuotas_gateway.api.main import create_app
from cuotas_gateway.infrastructure.database.models import Base
from cuotas_gateway.infrastructure.database.repositories import ContractRepository
from cuotas_gateway.infrastructure.database.session import get_db
from cuotas_gateway.domain.models import Contract, FormaPago, Installment
from cuotas_gateway.services.contracts import ContractLocks, ContractService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Fixed "today" so mora assertions do not depend on the calendar
TODAY = date(2025, 6, 20)


@pytest.fixture
def today() -> date:
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
def repository(db: Session) -> ContractRepository:
    return ContractRepository(db)


@pytest.fixture
def service(repository: ContractRepository) -> ContractService:
    """Contract service with its own lock registry and a fixed today"""
    return ContractService(repository, locks=ContractLocks(), today_provider=lambda: TODAY)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    def override_get_contract_service():
        return ContractService(ContractRepository(db), locks=ContractLocks(), today_provider=lambda: TODAY)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_contract_service] = override_get_contract_service
    return TestClient(app)


def make_contract(**overrides) -> Contract:
    """Installment contract: 10,000 price, 1,000 down, 3 cuotas, registered 2025-01-15"""
    fields = dict(
        id=None,
        owner_id="owner-1",
        nombre1="Rosa Quispe",
        dni1="45879632",
        manzana="B",
        lote="12",
        metraje=Decimal("120.00"),
        monto_total=Decimal("10000.00"),
        forma_pago=FormaPago.CUOTAS,
        fecha_registro=date(2025, 1, 15),
        inicial=Decimal("1000.00"),
        numero_cuotas=3,
    )
    fields.update(overrides)
    return Contract(**fields)


@pytest.fixture
def contract_factory():
    return make_contract


@pytest.fixture
def sample_contract() -> Contract:
    return make_contract()


@pytest.fixture
def three_cuotas() -> list[Installment]:
    """Three regular cuotas of 100.00 each (financed 300.00), no down payment"""
    return [
        Installment(numero=1, vencimiento=date(2025, 1, 31), monto=Decimal("100.00")),
        Installment(numero=2, vencimiento=date(2025, 2, 28), monto=Decimal("100.00")),
        Installment(numero=3, vencimiento=date(2025, 3, 31), monto=Decimal("100.00")),
    ]
