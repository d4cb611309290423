"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timedelta
from typing import Generator
from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from finadvisor.api.main import create_app
from finadvisor.api.dependencies import get_ai_client
from finadvisor.infrastructure.database import models as orm
from finadvisor.infrastructure.database.models import Base
from finadvisor.infrastructure.database.session import get_db
from finadvisor.domain.models import Account, DebtAccount, Transaction
from finadvisor.utils.date_utils import start_of_month, utcnow


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


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
def ai_client() -> AsyncMock:
    """Text generation client that fails unless a test sets a response"""
    client = AsyncMock()
    client.run.side_effect = RuntimeError("text backend not configured in tests")
    return client


@pytest.fixture
def client(db: Session, ai_client: AsyncMock) -> TestClient:
    """Create FastAPI test client with test database and mocked text backend"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_ai_client] = lambda: ai_client
    return TestClient(app)


@pytest.fixture
def now() -> datetime:
    """Fixed mid-month clock for pure domain tests"""
    return datetime(2024, 6, 15, 12, 0, 0)


@pytest.fixture
def seed(db: Session):
    """Insert ORM rows for a tenant; returns a small builder namespace"""

    class Seeder:
        def __init__(self):
            self.categories = {}

        def category(self, tenant_id: str, name: str, type: str = "expense") -> orm.Category:
            key = (tenant_id, name)
            if key not in self.categories:
                row = orm.Category(tenant_id=tenant_id, name=name, type=type)
                db.add(row)
                db.flush()
                self.categories[key] = row
            return self.categories[key]

        def account(self, tenant_id: str, type: str, balance: float, age_days: int = 365, name: str = None):
            row = orm.Account(
                tenant_id=tenant_id,
                name=name or f"{type} account",
                type=type,
                balance=balance,
                created_at=utcnow() - timedelta(days=age_days),
            )
            db.add(row)
            db.commit()
            return row

        def transaction(
            self,
            tenant_id: str,
            amount: float,
            type: str,
            date: datetime,
            description: str = "",
            category: str = None,
        ):
            category_id = self.category(tenant_id, category, type).id if category else None
            row = orm.Transaction(
                tenant_id=tenant_id,
                amount=amount,
                type=type,
                date=date,
                description=description,
                category_id=category_id,
            )
            db.add(row)
            db.commit()
            return row

        def monthly_cash_flow(self, tenant_id: str, income: float, expenses: float, months: int = 3):
            """Salary and rent in each of the last `months` full months"""
            for back in range(1, months + 1):
                month_start = start_of_month(utcnow(), back)
                self.transaction(tenant_id, income, "income", month_start + timedelta(days=1), "Salary", "Salary")
                self.transaction(tenant_id, -expenses, "expense", month_start + timedelta(days=2), "Rent", "Housing")

        def debt(self, tenant_id: str, **kwargs):
            kwargs.setdefault("name", "Debt")
            kwargs.setdefault("type", "personal_loan")
            kwargs.setdefault("original_balance", kwargs.get("current_balance", 0))
            row = orm.DebtAccount(tenant_id=tenant_id, **kwargs)
            db.add(row)
            db.commit()
            return row

        def goal(self, tenant_id: str, **kwargs):
            row = orm.Goal(tenant_id=tenant_id, **kwargs)
            db.add(row)
            db.commit()
            return row

        def contribution(self, goal: orm.Goal, amount: float, date: datetime):
            row = orm.GoalContribution(goal_id=goal.id, amount=amount, date=date)
            db.add(row)
            db.commit()
            return row

        def profile(self, tenant_id: str, **kwargs):
            row = orm.UserFinancialProfile(tenant_id=tenant_id, **kwargs)
            db.add(row)
            db.commit()
            return row

    return Seeder()


@pytest.fixture
def sample_accounts(now: datetime) -> list[Account]:
    return [
        Account(id="acc_current", name="Current", type="current", balance=1200.0, created_at=now - timedelta(days=30 * 130)),
        Account(id="acc_savings", name="Savings", type="savings", balance=8000.0, created_at=now - timedelta(days=30 * 50)),
        Account(id="acc_card", name="Card", type="credit", balance=-500.0, created_at=now - timedelta(days=30 * 20)),
    ]


@pytest.fixture
def sample_debts() -> list[DebtAccount]:
    return [
        DebtAccount(
            id="debt_card",
            name="Credit Card",
            type="credit_card",
            original_balance=3000.0,
            current_balance=1500.0,
            interest_rate=0.229,
            minimum_payment=45.0,
        ),
        DebtAccount(
            id="debt_car",
            name="Car Loan",
            type="car_loan",
            original_balance=12000.0,
            current_balance=6000.0,
            interest_rate=0.069,
            minimum_payment=250.0,
            monthly_payment=280.0,
        ),
    ]


@pytest.fixture
def sample_transactions(now: datetime) -> list[Transaction]:
    """Three months of salary, rent, groceries and card repayments"""
    transactions = []
    for back in range(1, 4):
        month_start = start_of_month(now, back)
        transactions.extend(
            [
                Transaction(f"sal_{back}", 3000.0, "income", "Salary", month_start + timedelta(days=1), "Salary"),
                Transaction(f"rent_{back}", -1000.0, "expense", "Rent", month_start + timedelta(days=2), "Housing"),
                Transaction(f"food_{back}", -300.0, "expense", "Tesco", month_start + timedelta(days=5), "Groceries"),
                Transaction(
                    f"card_{back}", -100.0, "expense", "Credit card payment", month_start + timedelta(days=20), "Debt"
                ),
            ]
        )
    return transactions
