from sqlalchemy import (
    Boolean, CheckConstraint, Column, ForeignKey, Integer, Numeric, String, Text, TIMESTAMP,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from origin_api.database import Base


class Product(Base):
    __tablename__ = "products"
    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_products_price_non_negative"),
        CheckConstraint("stock_quantity >= 0", name="ck_products_stock_non_negative"),
        CheckConstraint("sold_quantity >= 0", name="ck_products_sold_non_negative"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True, index=True)
    # Money is stored as fixed-point; never floats.
    price = Column(Numeric(12, 2), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0, server_default="0")
    sold_quantity = Column(Integer, nullable=False, default=0, server_default="0")
    image_url = Column(String(500), nullable=True)

    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    # passive_deletes: let the FK's ON DELETE SET NULL detach sales, never delete them
    sales = relationship("Sale", back_populates="product", passive_deletes=True)


class Sale(Base):
    """
    Immutable sales ledger entry.
    Rows are never deleted; a reversal only flips is_reversed.
    unit_price is a snapshot taken at sale time; later price changes don't touch it.
    """
    __tablename__ = "sales"
    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_sales_quantity_positive"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    # SET NULL: a sale outlives the product it refers to
    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    customer_name = Column(String(200), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(30), nullable=True)
    is_reversed = Column(Boolean, nullable=False, default=False, server_default="0", index=True)

    sale_date = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now(), index=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    product = relationship("Product", back_populates="sales")
