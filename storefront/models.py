"""
Pydantic models for cart lines, catalog data, orders, requests, and responses.
"""
from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from decimal import Decimal

from storefront.customization import customization_signature

OrderStatus = Literal["pending", "processing", "shipped", "delivered", "cancelled"]


class CustomizationDetail(BaseModel):
    """One chosen customization option"""
    part_id: str = Field(..., description="Customizable part identifier")
    part_name: str = Field(..., description="Display name of the part")
    color: str = Field(..., description="Chosen colour")
    price: Decimal = Field(Decimal("0"), ge=0, description="Price of this option")


class CartLineDraft(BaseModel):
    """Cart line before it has been given an id"""
    product_id: str = Field(..., description="Catalog product identifier")
    name: str = Field("", description="Product name at time of add")
    quantity: int = Field(..., ge=1, description="Units on this line")
    unit_price: Decimal = Field(..., ge=0, description="Base price at time of add")
    customization_price: Decimal = Field(Decimal("0"), ge=0, description="Per-unit customization surcharge")
    stock_ceiling: Optional[int] = Field(None, ge=0, description="Catalog stock for the product; None = unknown")
    is_customized: bool = Field(False, description="Whether the line carries customizations")
    customizations: List[CustomizationDetail] = Field(default_factory=list)
    customization_signature: Optional[str] = Field(None, description="Canonical encoding of customizations")
    image_url: Optional[str] = None
    model_url: Optional[str] = None
    base_model_url: Optional[str] = None

    @model_validator(mode="after")
    def derive_signature(self):
        if self.is_customized:
            self.customization_signature = customization_signature(self.customizations)
        else:
            self.customization_signature = None
        return self

    @property
    def line_total(self) -> Decimal:
        return (self.unit_price + self.customization_price) * self.quantity

    def same_line_as(self, other: "CartLineDraft") -> bool:
        """Identity rule for merging instead of duplicating"""
        if self.product_id != other.product_id or self.is_customized != other.is_customized:
            return False
        if not self.is_customized:
            return True
        return self.customization_signature == other.customization_signature


class CartLine(CartLineDraft):
    """Cart line item"""
    id: str = Field(..., description="Line item identifier")


class StockAdvisory(BaseModel):
    """Advisory raised when a requested quantity is clamped to available stock"""
    product_id: str
    stock_ceiling: int
    in_cart: int = Field(..., description="Units of this product already in the cart")
    requested: int
    allowed: int
    message: str


class CartResponse(BaseModel):
    """Response model for cart retrieval and mutation"""
    cart_id: Optional[str] = Field(None, description="Cart identifier")
    lines: List[CartLine] = Field(default_factory=list)
    item_count: int = Field(0, description="Total number of units")
    total_price: Decimal = Field(Decimal("0"), description="Total cart price")
    advisories: List[StockAdvisory] = Field(default_factory=list)


class AddCartItemRequest(BaseModel):
    """Request model for adding an item to the cart"""
    product_id: str = Field(..., description="Product identifier")
    quantity: int = Field(1, ge=1, description="Requested quantity")
    is_customized: bool = False
    customizations: List[CustomizationDetail] = Field(default_factory=list)
    customization_price: Optional[Decimal] = Field(None, ge=0, description="Defaults to the sum of part prices")
    model_url: Optional[str] = Field(None, description="Customized model URL, if any")
    image_url: Optional[str] = None


class UpdateQuantityRequest(BaseModel):
    """Request model for changing a line's quantity"""
    quantity: int = Field(..., description="New quantity; values below 1 are ignored")


class Product(BaseModel):
    """Catalog product as served by the remote API"""
    product_id: str
    name: str
    description: str = ""
    price: Decimal
    quantity: Optional[int] = Field(None, description="Units in stock")
    model_url: Optional[str] = None
    category: Optional[str] = None


class ProductCreateRequest(BaseModel):
    """Request model for creating a product with a base64 model file"""
    name: str
    description: str = ""
    price: Decimal = Field(..., ge=0)
    quantity: int = Field(0, ge=0)
    model_file: str = Field(..., description="Base64 encoded 3D model")
    file_name: str


class ProductUpdateRequest(BaseModel):
    """Request model for updating product details"""
    name: str
    description: str = ""
    price: Decimal = Field(..., ge=0)


class StockChangeRequest(BaseModel):
    """Relative stock adjustment (positive or negative)"""
    quantity_change: int


class ShippingInfo(BaseModel):
    """Customer shipping details"""
    shipping_address: Optional[str] = None
    phone_number: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.shipping_address) and bool(self.phone_number)


class UserProfile(ShippingInfo):
    """Customer profile from the remote API"""
    user_id: str
    email: str = ""
    name: str = ""


class User(BaseModel):
    """Customer account as seen by admins"""
    user_id: str
    email: str = ""
    name: str = ""
    created_at: str = ""
    shipping_address: Optional[str] = None
    phone: Optional[str] = None
    orders_count: Optional[int] = None


class UserUpdateRequest(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    shipping_address: Optional[str] = None
    phone: Optional[str] = None


class OrderItem(BaseModel):
    product_id: str
    quantity: int
    price: Decimal = Decimal("0")
    subtotal: Decimal = Decimal("0")
    product_name: Optional[str] = None
    customization_price: Optional[Decimal] = None
    customization_details: Optional[List[dict]] = None
    model_url: Optional[str] = None


class Order(BaseModel):
    order_id: str
    user_id: str = ""
    items: List[OrderItem] = Field(default_factory=list)
    created_at: str = ""
    status: OrderStatus = "pending"
    shipping_address: str = ""
    total_amount: Decimal = Decimal("0")
    custom_model: Optional[str] = None
    custom_models: Optional[List[str]] = None


class OrderStatusUpdate(BaseModel):
    status: OrderStatus


class CheckoutRequest(BaseModel):
    """Request model for checkout"""
    shipping_address: Optional[str] = Field(None, description="Overrides the profile address")


class CheckoutResponse(BaseModel):
    """Response model for checkout"""
    order_id: Optional[str] = Field(None, description="Order identifier assigned by the API")
    cart_id: str = Field(..., description="Cart identifier that was checked out")
    total: Decimal = Field(..., description="Order total")
    items: List[CartLine] = Field(..., description="Ordered lines")
    message: str = Field(..., description="Checkout status message")


class AdminLoginRequest(BaseModel):
    username: str
    password: str


class AdminLoginResponse(BaseModel):
    token: str
    admin_id: str
    message: str = "Login successful"
