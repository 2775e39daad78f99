"""
Pytest fixtures: SQLite en memoria, sesión por test y TestClient con get_db reemplazado.
"""
import uuid
from collections.abc import Generator
from datetime import datetime
from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config.database import get_db
from app.main import app
from app.shared.database.models import (
    Activity, Base, Business, BusinessInventory, Expense, ProductMaster, Promo, Sale, SaleItem
)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db(engine) -> Generator[Session, None, None]:
    TestingSession = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(db: Session) -> Generator[TestClient, None, None]:
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


# =============================================================================
# FACTORIES
# =============================================================================

class StoreFactory:
    """Helpers para cargar datos de prueba en la sesión"""

    def __init__(self, db: Session):
        self.db = db

    def business(self, name: str = "Kiosco Centro") -> Business:
        business = Business(id=str(uuid.uuid4()), name=name)
        self.db.add(business)
        self.db.commit()
        return business

    def product(self, name: str, cost=None, selling=None) -> ProductMaster:
        product = ProductMaster(
            id=str(uuid.uuid4()),
            name=name,
            default_purchase=Decimal(str(cost)) if cost is not None else None,
            default_selling=Decimal(str(selling)) if selling is not None else None,
        )
        self.db.add(product)
        self.db.commit()
        return product

    def promo(self, name: str) -> Promo:
        promo = Promo(id=str(uuid.uuid4()), name=name)
        self.db.add(promo)
        self.db.commit()
        return promo

    def stock(self, business: Business, product: ProductMaster, stock: int) -> BusinessInventory:
        level = BusinessInventory(business_id=business.id, product_id=product.id, stock=stock)
        self.db.add(level)
        self.db.commit()
        return level

    def sale(self, business: Business, items, payment_method: str = "cash", timestamp: datetime = None) -> Sale:
        """``items``: lista de (producto o None, cantidad, total[, promo])"""
        sale = Sale(
            id=str(uuid.uuid4()),
            business_id=business.id,
            payment_method=payment_method,
            timestamp=timestamp or datetime.now(),
            total=Decimal("0"),
        )
        self.db.add(sale)
        self.db.flush()

        total = Decimal("0")
        for entry in items:
            product, quantity, line_total = entry[:3]
            promo = entry[3] if len(entry) > 3 else None
            line_total = Decimal(str(line_total))
            self.db.add(SaleItem(
                sale_id=sale.id,
                product_master_id=product.id if product else None,
                promotion_id=promo.id if promo else None,
                quantity=quantity,
                price=line_total / quantity if quantity else None,
                total=line_total,
            ))
            total += line_total
        sale.total = total
        self.db.commit()
        return sale

    def expense(self, business: Business, amount, when: datetime = None, category: str = "Varios") -> Expense:
        expense = Expense(
            business_id=business.id,
            amount=Decimal(str(amount)),
            category=category,
            date=when or datetime.now(),
        )
        self.db.add(expense)
        self.db.commit()
        return expense

    def loss(self, business: Business, product: ProductMaster, lost_cash, when: datetime,
             motivo: str = "Perdida", details: str = "") -> Activity:
        activity = Activity(
            business_id=business.id,
            product_id=product.id if product else None,
            motivo=motivo,
            details=details,
            lost_cash=Decimal(str(lost_cash)),
            created_at=when,
        )
        self.db.add(activity)
        self.db.commit()
        return activity


@pytest.fixture
def store(db: Session) -> StoreFactory:
    return StoreFactory(db)
