"""
Shop schemas: products, sales, and the sell / reverse-sale payloads.
"""
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from datetime import datetime


# ── Products ──────────────────────────────────────────────────────────────────

class ProductCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    price: float = Field(ge=0)
    stock_quantity: int = Field(default=0, ge=0, alias="stockQuantity")
    image_url: Optional[str] = Field(default=None, max_length=500, alias="imageUrl")


class ProductUpdateRequest(BaseModel):
    """
    Partial update. Only the fields the client actually sent are applied
    (model_dump(exclude_unset=True)); an omitted field is left untouched.
    """
    model_config = ConfigDict(populate_by_name=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    category: Optional[str] = Field(default=None, max_length=100)
    price: Optional[float] = Field(default=None, ge=0)
    stock_quantity: Optional[int] = Field(default=None, ge=0, alias="stockQuantity")
    image_url: Optional[str] = Field(default=None, max_length=500, alias="imageUrl")


class StockAdjustRequest(BaseModel):
    quantity: int = Field(ge=0)


class PriceAdjustRequest(BaseModel):
    price: float = Field(ge=0)


class ProductOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    category: Optional[str] = None
    price: float
    stock_quantity: int
    sold_quantity: int
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# ── Sales ─────────────────────────────────────────────────────────────────────

class SellProductRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    product_id: int = Field(ge=1, alias="productId")
    quantity: int = Field(ge=1)
    customer_name: Optional[str] = Field(default=None, max_length=200, alias="customerName")
    customer_email: Optional[EmailStr] = Field(default=None, alias="customerEmail")
    customer_phone: Optional[str] = Field(default=None, max_length=30, alias="customerPhone")


class ReverseSaleRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sale_id: int = Field(ge=1, alias="saleId")


class SaleOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: Optional[int] = None
    quantity: int
    unit_price: float
    total_amount: float
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None
    customer_phone: Optional[str] = None
    is_reversed: bool
    sale_date: Optional[datetime] = None
    created_at: Optional[datetime] = None


class SaleHistoryOut(SaleOut):
    # "Product Deleted" / "N/A" once the product row is gone
    product_name: str
    product_category: str


class SellProductResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    sale: SaleOut
    updated_product: ProductOut = Field(alias="updatedProduct")


class ReverseSaleResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    sale_id: int = Field(alias="saleId")
    reversed_quantity: int = Field(alias="reversedQuantity")
    reversed_amount: float = Field(alias="reversedAmount")
    updated_product: ProductOut = Field(alias="updatedProduct")


class ProductDeleteResponse(BaseModel):
    message: str
    deleted: bool
