# app/shared/database/models.py
import uuid

from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text,
    Numeric, ForeignKey, UniqueConstraint, func
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def new_uuid() -> str:
    return str(uuid.uuid4())


# =====================================================
# MIXIN PARA TIMESTAMPS
# =====================================================
class TimestampMixin:
    """Mixin que agrega campo created_at"""
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp())


# =====================================================
# NEGOCIOS Y EMPLEADOS
# =====================================================

class Business(Base, TimestampMixin):
    """Local / negocio (tenant)"""
    __tablename__ = "businesses"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    address = Column(String(255))
    is_active = Column(Boolean, default=True)

    # Relationships
    employees = relationship("Employee", back_populates="business")
    inventory = relationship("BusinessInventory", back_populates="business")
    sales = relationship("Sale", back_populates="business")
    expenses = relationship("Expense", back_populates="business")


class Employee(Base, TimestampMixin):
    """Empleado de un local"""
    __tablename__ = "employees"

    id = Column(String(36), primary_key=True, default=new_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id"), index=True)
    user_id = Column(String(36))
    name = Column(String(255), nullable=False)
    email = Column(String(255))
    role = Column(String(50), default="employee")
    is_active = Column(Boolean, default=True)

    business = relationship("Business", back_populates="employees")


# =====================================================
# PRODUCTOS E INVENTARIO
# =====================================================

class ProductMaster(Base, TimestampMixin):
    """Catálogo maestro de productos (nombre con prefijo de categoría)"""
    __tablename__ = "products_master"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    code = Column(String(100))
    default_purchase = Column(Numeric(12, 2))
    default_selling = Column(Numeric(12, 2))

    inventory = relationship("BusinessInventory", back_populates="product")


class BusinessInventory(Base):
    """Stock actual de un producto en un local"""
    __tablename__ = "business_inventory"
    __table_args__ = (
        UniqueConstraint("business_id", "product_id", name="uq_business_inventory_product"),
    )

    id = Column(String(36), primary_key=True, default=new_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products_master.id"), nullable=False, index=True)
    stock = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime, server_default=func.current_timestamp(), onupdate=func.current_timestamp())

    business = relationship("Business", back_populates="inventory")
    product = relationship("ProductMaster", back_populates="inventory")


class Promo(Base, TimestampMixin):
    """Promoción (combo) vendible como una línea"""
    __tablename__ = "promos"

    id = Column(String(36), primary_key=True, default=new_uuid)
    name = Column(String(255), nullable=False)
    price = Column(Numeric(12, 2))


# =====================================================
# VENTAS Y TURNOS
# =====================================================

class Shift(Base):
    """Turno de trabajo de un empleado"""
    __tablename__ = "shifts"

    id = Column(String(36), primary_key=True, default=new_uuid)
    employee_id = Column(String(36), ForeignKey("employees.id"), nullable=False, index=True)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime)
    created_at = Column(DateTime, server_default=func.current_timestamp())


class Sale(Base):
    """Venta (ticket)"""
    __tablename__ = "sales"

    id = Column(String(36), primary_key=True, default=new_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    employee_id = Column(String(36), ForeignKey("employees.id"))
    shift_id = Column(String(36), ForeignKey("shifts.id"))
    total = Column(Numeric(12, 2), nullable=False, default=0)
    payment_method = Column(String(50))
    timestamp = Column(DateTime, nullable=False, server_default=func.current_timestamp(), index=True)

    # Relationships
    business = relationship("Business", back_populates="sales")
    items = relationship("SaleItem", back_populates="sale", cascade="all, delete-orphan")


class SaleItem(Base):
    """Línea de venta"""
    __tablename__ = "sale_items"

    id = Column(Integer, primary_key=True, autoincrement=True)
    sale_id = Column(String(36), ForeignKey("sales.id"), nullable=False, index=True)
    product_master_id = Column(String(36), ForeignKey("products_master.id"), index=True)
    promotion_id = Column(String(36), ForeignKey("promos.id"))
    quantity = Column(Integer, nullable=False, default=1)
    price = Column(Numeric(12, 2))
    total = Column(Numeric(12, 2), nullable=False, default=0)

    # Relationships
    sale = relationship("Sale", back_populates="items")
    product = relationship("ProductMaster")


# =====================================================
# GASTOS Y ACTIVIDADES
# =====================================================

class Expense(Base):
    """Gasto operativo de un local"""
    __tablename__ = "expenses"

    id = Column(String(36), primary_key=True, default=new_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    category = Column(String(100), nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    description = Column(Text)
    date = Column(DateTime, nullable=False, server_default=func.current_timestamp(), index=True)

    business = relationship("Business", back_populates="expenses")


class Activity(Base):
    """Movimiento registrado en un local (incluye pérdidas y vencimientos)"""
    __tablename__ = "activities"

    id = Column(String(36), primary_key=True, default=new_uuid)
    business_id = Column(String(36), ForeignKey("businesses.id"), nullable=False, index=True)
    user_id = Column(String(36))
    product_id = Column(String(36), ForeignKey("products_master.id"))
    action = Column(String(100))
    details = Column(Text)
    motivo = Column(String(100), index=True)
    lost_cash = Column(Numeric(12, 2), default=0)
    created_at = Column(DateTime, nullable=False, server_default=func.current_timestamp(), index=True)

    business = relationship("Business")
    product = relationship("ProductMaster")
