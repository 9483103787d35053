"""
Shop service: product catalogue and the sales ledger.

CRITICAL: sell_product and reverse_sale each change the product row and the
sales table together. Both:
  1. lock the rows they touch with SELECT ... FOR UPDATE, and
  2. apply the change with a guarded UPDATE (WHERE stock_quantity >= :q,
     WHERE is_reversed = false) whose rowcount must be exactly 1.
The guard is what actually keeps stock from going negative; it holds even on
backends that ignore FOR UPDATE (SQLite) or when the session read a stale row.
Everything between the first read and the commit is one transaction; any
failure rolls the whole thing back and re-raises.

Locking order convention (to prevent deadlocks):
  ALWAYS lock the sale BEFORE its product. Never reverse this order.

Admin notifications and audit entries are written only after the commit and
never fail the operation.
"""
import logging
from decimal import Decimal
from typing import Optional

from fastapi import HTTPException
from sqlalchemy import case, func, select, update
from sqlalchemy.orm import Session

from origin_api.config import settings
from origin_api.models.product import Product, Sale
from origin_api.core.exceptions import AlreadyReversedException, InsufficientStockException, NotFoundException
from origin_api.middleware.audit_middleware import log_admin_action
from origin_api.schemas.shop import ProductCreateRequest, ProductUpdateRequest
from origin_api.services.notification_service import notify_admins_best_effort

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")

# Columns a partial product update may touch, and whether NULL is allowed
UPDATABLE_PRODUCT_FIELDS = {
    "name": False,
    "description": True,
    "category": True,
    "price": False,
    "stock_quantity": False,
    "image_url": True,
}


def to_money(value) -> Decimal:
    return Decimal(str(value)).quantize(CENT)


# ── Products ──────────────────────────────────────────────────────────────────

def _lock_product(db: Session, product_id: int) -> Optional[Product]:
    return db.execute(
        select(Product).where(Product.id == product_id).with_for_update()
    ).scalar_one_or_none()


def get_product(db: Session, product_id: int) -> Product:
    product = db.query(Product).filter(Product.id == product_id).first()
    if not product:
        raise NotFoundException("Product")
    return product


def list_products(db: Session) -> list[Product]:
    return db.query(Product).order_by(Product.created_at.desc(), Product.id.desc()).all()


def create_product(db: Session, payload: ProductCreateRequest, actor_id: Optional[int] = None) -> Product:
    product = Product(
        name=payload.name,
        description=payload.description,
        category=payload.category,
        price=to_money(payload.price),
        stock_quantity=payload.stock_quantity,
        sold_quantity=0,
        image_url=payload.image_url,
    )
    db.add(product)
    db.commit()
    db.refresh(product)

    log_admin_action(db, actor_id, "CREATE_PRODUCT", "product", product.id,
                     {"name": product.name, "stock_quantity": product.stock_quantity})
    notify_admins_best_effort(
        db,
        "New Product Added",
        f'A new product "{product.name}" has been added to the shop '
        f"with {product.stock_quantity} units in stock.",
    )
    return product


def update_product(
    db: Session,
    product_id: int,
    payload: ProductUpdateRequest,
    actor_id: Optional[int] = None,
) -> Product:
    """
    Applies only the fields present in the request. Explicit nulls are
    ignored for columns that can't be NULL.
    """
    product = get_product(db, product_id)

    changes = {}
    for field, value in payload.model_dump(exclude_unset=True).items():
        nullable = UPDATABLE_PRODUCT_FIELDS.get(field)
        if nullable is None or (value is None and not nullable):
            continue
        changes[field] = to_money(value) if field == "price" else value

    if not changes:
        return product

    for field, value in changes.items():
        setattr(product, field, value)
    db.commit()
    db.refresh(product)

    log_admin_action(db, actor_id, "UPDATE_PRODUCT", "product", product.id,
                     {"fields": sorted(changes)})
    if "stock_quantity" in changes:
        notify_admins_best_effort(
            db,
            "Product Stock Updated",
            f'Stock quantity for product "{product.name}" has been updated '
            f"to {product.stock_quantity} units.",
        )
    return product


def delete_product(db: Session, product_id: int, actor_id: Optional[int] = None) -> None:
    """Deletes the product. Its sales stay in the ledger with product_id = NULL."""
    product = get_product(db, product_id)
    name = product.name
    db.delete(product)
    db.commit()

    log_admin_action(db, actor_id, "DELETE_PRODUCT", "product", product_id, {"name": name})
    notify_admins_best_effort(db, "Product Removed", f'Product "{name}" has been removed from the shop.')


def adjust_stock(db: Session, product_id: int, quantity: int, actor_id: Optional[int] = None) -> Product:
    """Sets stock to an absolute count and raises a low-stock alert under the threshold."""
    product = _lock_product(db, product_id)
    if not product:
        db.rollback()
        raise NotFoundException("Product")

    previous = product.stock_quantity
    product.stock_quantity = quantity
    db.commit()
    db.refresh(product)

    log_admin_action(db, actor_id, "ADJUST_STOCK", "product", product.id,
                     {"from": previous, "to": quantity})
    notify_admins_best_effort(
        db,
        "Product Stock Adjusted",
        f'Stock quantity for product "{product.name}" has been adjusted to {quantity} units.',
    )
    if quantity < settings.low_stock_threshold:
        notify_admins_best_effort(
            db,
            "Low Stock Alert",
            f'Product "{product.name}" is running low on stock ({quantity} units remaining). '
            f"Please consider restocking.",
        )
    return product


def adjust_price(db: Session, product_id: int, price: float, actor_id: Optional[int] = None) -> Product:
    product = _lock_product(db, product_id)
    if not product:
        db.rollback()
        raise NotFoundException("Product")

    previous = product.price
    product.price = to_money(price)
    db.commit()
    db.refresh(product)

    log_admin_action(db, actor_id, "ADJUST_PRICE", "product", product.id,
                     {"from": str(previous), "to": str(product.price)})
    notify_admins_best_effort(
        db,
        "Product Price Adjusted",
        f'Price for product "{product.name}" has been adjusted to ${product.price:.2f}.',
    )
    return product


# ── Sales ─────────────────────────────────────────────────────────────────────

def sell_product(
    db: Session,
    product_id: int,
    quantity: int,
    customer_name: Optional[str] = None,
    customer_email: Optional[str] = None,
    customer_phone: Optional[str] = None,
    actor_id: Optional[int] = None,
) -> tuple[Sale, Product]:
    """
    Records a sale: stock -= quantity, sold += quantity, new Sale row with the
    current price snapshotted; all in one commit.
    Raises NotFoundException / InsufficientStockException; nothing is written then.
    Returns (sale, product) after commit.
    """
    try:
        product = _lock_product(db, product_id)
        if not product:
            raise NotFoundException("Product")
        if quantity > product.stock_quantity:
            raise InsufficientStockException(product.stock_quantity)

        result = db.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(
                stock_quantity=Product.stock_quantity - quantity,
                sold_quantity=Product.sold_quantity + quantity,
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            # Our read was stale: a concurrent sale took the stock first
            available = db.execute(
                select(Product.stock_quantity).where(Product.id == product_id)
            ).scalar_one()
            raise InsufficientStockException(available)

        unit_price = to_money(product.price)
        sale = Sale(
            product_id=product_id,
            quantity=quantity,
            unit_price=unit_price,
            total_amount=unit_price * quantity,
            customer_name=customer_name,
            customer_email=customer_email,
            customer_phone=customer_phone,
            is_reversed=False,
        )
        db.add(sale)
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception(f"Sale of product {product_id} failed, rolled back")
        raise

    db.refresh(sale)
    db.refresh(product)
    logger.info(f"Sale {sale.id}: product={product_id} qty={quantity} total={sale.total_amount}")

    log_admin_action(db, actor_id, "SELL_PRODUCT", "sale", sale.id,
                     {"product_id": product_id, "quantity": quantity,
                      "total_amount": str(sale.total_amount)})
    notify_admins_best_effort(
        db,
        "Product Sold",
        f'Product "{product.name}" has been sold. Quantity: {quantity}, '
        f"Amount: ${sale.total_amount:.2f}. Customer: {customer_name or 'Unknown'}",
    )
    return sale, product


def reverse_sale(db: Session, sale_id: int, actor_id: Optional[int] = None) -> tuple[Sale, Product]:
    """
    Undoes a sale: stock += quantity, sold -= quantity (floored at 0), sale
    flagged reversed; all in one commit. The sale row itself is kept.

    Raises NotFoundException if the sale or its product is gone, and
    AlreadyReversedException if the sale was reversed before (stock is
    never credited twice).
    Returns (sale, product) after commit.
    """
    try:
        sale = db.execute(
            select(Sale).where(Sale.id == sale_id).with_for_update()
        ).scalar_one_or_none()
        if not sale:
            raise NotFoundException("Sale")
        if sale.is_reversed:
            raise AlreadyReversedException()

        product = _lock_product(db, sale.product_id) if sale.product_id is not None else None
        if not product:
            raise NotFoundException("Product associated with sale")

        flagged = db.execute(
            update(Sale)
            .where(Sale.id == sale_id, Sale.is_reversed.is_(False))
            .values(is_reversed=True, updated_at=func.now())
            .execution_options(synchronize_session=False)
        )
        if flagged.rowcount != 1:
            raise AlreadyReversedException()

        quantity = sale.quantity
        db.execute(
            update(Product)
            .where(Product.id == product.id)
            .values(
                stock_quantity=Product.stock_quantity + quantity,
                sold_quantity=case(
                    (Product.sold_quantity >= quantity, Product.sold_quantity - quantity),
                    else_=0,
                ),
                updated_at=func.now(),
            )
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except Exception:
        db.rollback()
        logger.exception(f"Reversal of sale {sale_id} failed, rolled back")
        raise

    db.refresh(sale)
    db.refresh(product)
    logger.info(f"Sale {sale_id} reversed: product={product.id} qty={sale.quantity}")

    log_admin_action(db, actor_id, "REVERSE_SALE", "sale", sale_id,
                     {"product_id": product.id, "quantity": sale.quantity,
                      "total_amount": str(sale.total_amount)})
    notify_admins_best_effort(
        db,
        "Sale Reversed",
        f'Sale for product "{product.name}" has been reversed. Quantity: {sale.quantity}, '
        f"Amount: ${sale.total_amount:.2f}. Sale ID: {sale_id}. "
        f"Revenue reduced by ${sale.total_amount:.2f}.",
    )
    return sale, product


def get_total_revenue(db: Session) -> float:
    """Sum of total_amount over sales that have not been reversed. Recomputed on every call."""
    total = (
        db.query(func.coalesce(func.sum(Sale.total_amount), 0))
        .filter(Sale.is_reversed.is_(False))
        .scalar()
    )
    return float(total or 0)


def get_sales_history(db: Session) -> list[dict]:
    """All sales, newest first, labelled with their product (or "Product Deleted")."""
    rows = (
        db.query(Sale, Product.name, Product.category)
        .outerjoin(Product, Sale.product_id == Product.id)
        .order_by(Sale.sale_date.desc(), Sale.id.desc())
        .all()
    )
    history = []
    for sale, product_name, product_category in rows:
        history.append({
            "id": sale.id,
            "product_id": sale.product_id,
            "quantity": sale.quantity,
            "unit_price": sale.unit_price,
            "total_amount": sale.total_amount,
            "customer_name": sale.customer_name,
            "customer_email": sale.customer_email,
            "customer_phone": sale.customer_phone,
            "is_reversed": bool(sale.is_reversed),
            "sale_date": sale.sale_date,
            "created_at": sale.created_at,
            "product_name": product_name if product_name is not None else "Product Deleted",
            "product_category": product_category if product_category is not None else "N/A",
        })
    return history
