"""
Shop router: product catalogue, selling, reversing sales, revenue.

Every endpoint requires an admin or controller token (get_shop_operator).
Static paths (/sell, /sales, /revenue, /reverse-sale) are declared before
/{product_id} so they never get captured by it.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from origin_api.database import get_db
from origin_api.core.dependencies import get_shop_operator
from origin_api.models.user import User
from origin_api.schemas.shop import (
    ProductCreateRequest, ProductUpdateRequest, StockAdjustRequest, PriceAdjustRequest,
    ProductOut, SellProductRequest, ReverseSaleRequest, SaleOut, SaleHistoryOut,
    SellProductResponse, ReverseSaleResponse, ProductDeleteResponse,
)
from origin_api.services import shop_service

router = APIRouter()


# ── Sales ─────────────────────────────────────────────────────────────────────

@router.post("/sell", response_model=SellProductResponse, status_code=201)
def sell_product(
    body: SellProductRequest,
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    """Sell `quantity` units. 409 if stock is short; nothing is written in that case."""
    sale, product = shop_service.sell_product(
        db,
        product_id=body.product_id,
        quantity=body.quantity,
        customer_name=body.customer_name,
        customer_email=body.customer_email,
        customer_phone=body.customer_phone,
        actor_id=operator.id,
    )
    return {
        "sale": SaleOut.model_validate(sale),
        "updatedProduct": ProductOut.model_validate(product),
    }


@router.post("/reverse-sale", response_model=ReverseSaleResponse)
def reverse_sale(
    body: ReverseSaleRequest,
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    """Undo a sale's stock effect. A sale can only be reversed once (409 on a repeat)."""
    sale, product = shop_service.reverse_sale(db, body.sale_id, actor_id=operator.id)
    return {
        "message": "Sale reversed successfully",
        "saleId": sale.id,
        "reversedQuantity": sale.quantity,
        "reversedAmount": float(sale.total_amount),
        "updatedProduct": ProductOut.model_validate(product),
    }


@router.get("/sales", response_model=list[SaleHistoryOut])
def get_sales_history(
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    return shop_service.get_sales_history(db)


@router.get("/revenue", response_model=float)
def get_total_revenue(
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    """Total of all non-reversed sales."""
    return shop_service.get_total_revenue(db)


# ── Products ──────────────────────────────────────────────────────────────────

@router.get("", response_model=list[ProductOut])
def list_products(
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    return shop_service.list_products(db)


@router.post("", response_model=ProductOut, status_code=201)
def create_product(
    body: ProductCreateRequest,
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    return shop_service.create_product(db, body, actor_id=operator.id)


@router.get("/{product_id}", response_model=ProductOut)
def get_product(
    product_id: int,
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    return shop_service.get_product(db, product_id)


@router.put("/{product_id}", response_model=ProductOut)
def update_product(
    product_id: int,
    body: ProductUpdateRequest,
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    """Partial update; only the fields present in the body change."""
    return shop_service.update_product(db, product_id, body, actor_id=operator.id)


@router.delete("/{product_id}", response_model=ProductDeleteResponse)
def delete_product(
    product_id: int,
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    """Delete a product. Its sales history is kept."""
    shop_service.delete_product(db, product_id, actor_id=operator.id)
    return {"message": "Product deleted successfully", "deleted": True}


@router.put("/{product_id}/stock", response_model=ProductOut)
def adjust_stock(
    product_id: int,
    body: StockAdjustRequest,
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    return shop_service.adjust_stock(db, product_id, body.quantity, actor_id=operator.id)


@router.put("/{product_id}/price", response_model=ProductOut)
def adjust_price(
    product_id: int,
    body: PriceAdjustRequest,
    operator: User = Depends(get_shop_operator),
    db: Session = Depends(get_db),
):
    return shop_service.adjust_price(db, product_id, body.price, actor_id=operator.id)
