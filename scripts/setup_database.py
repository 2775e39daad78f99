# scripts/setup_database.py
"""
Crear las tablas y, opcionalmente, un local de demo con movimientos de la última semana.

Uso:
    python -m scripts.setup_database [--demo]
"""
import sys
from datetime import datetime, timedelta
from decimal import Decimal

from app.config.database import SessionLocal, engine
from app.shared.database.models import (
    Activity, Base, Business, BusinessInventory, Expense, ProductMaster, Sale, SaleItem
)


def create_tables():
    Base.metadata.create_all(bind=engine)
    print("✅ Tablas creadas")


def seed_demo():
    db = SessionLocal()
    try:
        if db.query(Business).count() > 0:
            print("📍 Ya hay locales cargados, no se crea demo")
            return

        business = Business(name="Kiosco Demo")
        products = [
            ProductMaster(name="BEBIDA Coca Cola 1.5L", default_purchase=Decimal("1200"), default_selling=Decimal("2000")),
            ProductMaster(name="GOLOSINAS Alfajor Triple", default_purchase=Decimal("450"), default_selling=Decimal("800")),
            ProductMaster(name="CIGARRILLOS Box 20", default_purchase=Decimal("2500"), default_selling=Decimal("3200")),
        ]
        db.add(business)
        db.add_all(products)
        db.flush()

        stocks = [0, 12, 3]
        for product, stock in zip(products, stocks):
            db.add(BusinessInventory(business_id=business.id, product_id=product.id, stock=stock))

        now = datetime.now()
        for day in range(7):
            sale = Sale(business_id=business.id, payment_method="cash" if day % 2 else "card",
                        total=Decimal("0"), timestamp=now - timedelta(days=day))
            db.add(sale)
            db.flush()
            total = Decimal("0")
            for product in products:
                line_total = product.default_selling * 2
                db.add(SaleItem(sale_id=sale.id, product_master_id=product.id, quantity=2,
                                price=product.default_selling, total=line_total))
                total += line_total
            sale.total = total

        db.add(Expense(business_id=business.id, category="Limpieza", amount=Decimal("3500"),
                       description="Artículos de limpieza", date=now - timedelta(days=1)))
        db.add(Activity(business_id=business.id, product_id=products[1].id, action="ajuste_stock",
                        details="Caja aplastada", motivo="Perdida", lost_cash=Decimal("900"),
                        created_at=now - timedelta(days=2)))
        db.add(Activity(business_id=business.id, product_id=products[0].id, action="ajuste_stock",
                        details="Vencida", motivo="Vencimiento", lost_cash=Decimal("2000"),
                        created_at=now - timedelta(days=9)))

        db.commit()
        print(f"✅ Local demo creado: {business.name} ({business.id})")
    finally:
        db.close()


if __name__ == "__main__":
    create_tables()
    if "--demo" in sys.argv:
        seed_demo()
