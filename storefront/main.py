"""
FastAPI application for the figurine storefront: cart, checkout, profile, and admin console.
"""
import time
import logging
from contextlib import asynccontextmanager
from typing import List, Optional
from fastapi import Depends, FastAPI, HTTPException, Header, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from storefront.config import Config
from storefront.models import (
    AddCartItemRequest,
    AdminLoginRequest,
    AdminLoginResponse,
    CartResponse,
    CheckoutRequest,
    CheckoutResponse,
    Order,
    OrderStatusUpdate,
    Product,
    ProductCreateRequest,
    ProductUpdateRequest,
    ShippingInfo,
    StockChangeRequest,
    UpdateQuantityRequest,
    User,
    UserProfile,
    UserUpdateRequest
)
from storefront.admin_auth import AdminAuthService
from storefront.api_client import StorefrontApiClient, close_api_client, get_api_client
from storefront.cart_service import CartService
from storefront.checkout_service import CheckoutService
from storefront.exceptions import (
    AdminAuthError,
    ApiError,
    ApiUnavailableError,
    CartLineNotFoundError,
    StorageConnectionError,
    ValidationError
)
from storefront.middleware import CartAuditMiddleware, audit_cart
from storefront.storage import close_storage, get_storage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    # Release pooled HTTP and Redis connections on shutdown
    close_api_client()
    close_storage()
    logger.info("Storefront API shut down")


# Initialize FastAPI app
app = FastAPI(
    title="Figurine Storefront API",
    description="Cart, checkout and admin console for the 3D figurine storefront",
    version="1.0.0",
    lifespan=lifespan
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Stock-Advisories", "X-Response-Time-Ms"],
)

# Request and cart audit logging
app.add_middleware(CartAuditMiddleware)


# Service wiring

def get_cart_service(api: StorefrontApiClient = Depends(get_api_client)) -> CartService:
    return CartService(get_storage(), api)


def get_checkout_service(
    cart_service: CartService = Depends(get_cart_service),
    api: StorefrontApiClient = Depends(get_api_client)
) -> CheckoutService:
    return CheckoutService(cart_service, api)


def get_admin_auth(api: StorefrontApiClient = Depends(get_api_client)) -> AdminAuthService:
    return AdminAuthService(get_storage(), api)


def cart_id_header(cart_id: str = Header(..., alias="X-Cart-ID", description="Cart identifier")) -> str:
    if not cart_id or not cart_id.strip():
        raise HTTPException(status_code=400, detail="Cart ID is required")
    return cart_id.strip()


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    """Extract the identity service token from the Authorization header"""
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


def require_admin(
    admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
    auth: AdminAuthService = Depends(get_admin_auth)
) -> str:
    return auth.require_admin(admin_token)


# Health check endpoint
@app.get("/health")
async def health_check():
    """
    Health check endpoint.
    Always returns HTTP 200 if the application is running and reports storage status.
    """
    storage_status = "healthy"
    storage_latency_ms = None

    try:
        storage = get_storage()
        ping_start = time.time()
        ping_result = storage.ping()
        storage_latency_ms = round((time.time() - ping_start) * 1000, 2)

        if not ping_result:
            storage_status = "unhealthy"
    except (StorageConnectionError, ValueError) as e:
        logger.warning(f"Storage health check failed: {e}")
        storage_status = "unhealthy"

    return JSONResponse(
        status_code=200,
        content={
            "status": "healthy",
            "service": "storefront-api",
            "storage": {
                "backend": Config.STORAGE_BACKEND,
                "status": storage_status,
                "latency_ms": storage_latency_ms
            },
            "timestamp": time.time()
        }
    )


# Cart endpoints
@app.get("/cart", response_model=CartResponse)
def get_cart(
    http_request: Request,
    cart_id: str = Depends(cart_id_header),
    cart_service: CartService = Depends(get_cart_service)
):
    """Get cart contents; unknown carts are empty"""
    return audit_cart(http_request, cart_service.get_cart(cart_id))


@app.post("/cart/items", response_model=CartResponse)
def add_cart_item(
    http_request: Request,
    request: AddCartItemRequest,
    cart_id: str = Depends(cart_id_header),
    cart_service: CartService = Depends(get_cart_service)
):
    """
    Add item to cart.
    Quantities beyond available stock are clamped and reported in `advisories`.
    """
    return audit_cart(http_request, cart_service.add_item(cart_id, request))


@app.patch("/cart/items/{line_id}", response_model=CartResponse)
def update_cart_item(
    http_request: Request,
    line_id: str,
    request: UpdateQuantityRequest,
    cart_id: str = Depends(cart_id_header),
    cart_service: CartService = Depends(get_cart_service)
):
    """Change a line's quantity"""
    cart = cart_service.update_quantity(cart_id, line_id, request.quantity)
    return audit_cart(http_request, cart, line_id)


@app.delete("/cart/items/{line_id}", response_model=CartResponse)
def remove_cart_item(
    http_request: Request,
    line_id: str,
    cart_id: str = Depends(cart_id_header),
    cart_service: CartService = Depends(get_cart_service)
):
    """Remove line from cart"""
    if not cart_service.remove_item(cart_id, line_id):
        raise HTTPException(status_code=404, detail="Line not found in cart")
    return audit_cart(http_request, cart_service.get_cart(cart_id), line_id)


@app.delete("/cart", response_model=CartResponse)
def clear_cart(
    http_request: Request,
    cart_id: str = Depends(cart_id_header),
    cart_service: CartService = Depends(get_cart_service)
):
    """Empty the cart"""
    cart_service.clear_cart(cart_id)
    return audit_cart(http_request, cart_service.get_cart(cart_id))

@app.post("/checkout", response_model=CheckoutResponse)
def checkout(
    request: CheckoutRequest,
    cart_id: str = Depends(cart_id_header),
    token: Optional[str] = Depends(bearer_token),
    checkout_service: CheckoutService = Depends(get_checkout_service)
):
    """Place an order for the cart contents and clear the cart"""
    return checkout_service.start_checkout(cart_id, token, request.shipping_address)


# Catalog endpoints
@app.get("/products", response_model=List[Product])
def list_products(api: StorefrontApiClient = Depends(get_api_client)):
    return api.list_products()


@app.get("/products/{product_id}", response_model=Product)
def get_product(product_id: str, api: StorefrontApiClient = Depends(get_api_client)):
    return api.get_product(product_id)


# Customer profile and orders
@app.get("/profile", response_model=UserProfile)
def get_profile(
    token: Optional[str] = Depends(bearer_token),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.get_profile(token)


@app.put("/profile", response_model=UserProfile)
def update_profile(
    shipping_info: ShippingInfo,
    token: Optional[str] = Depends(bearer_token),
    api: StorefrontApiClient = Depends(get_api_client)
):
    """Save shipping address and phone number"""
    if not shipping_info.shipping_address and not shipping_info.phone_number:
        raise ValidationError("Shipping address or phone number is required")
    return api.update_profile(token, shipping_info)


@app.get("/orders", response_model=List[Order])
def list_orders(
    token: Optional[str] = Depends(bearer_token),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.list_user_orders(token)


# Admin console
@app.post("/admin/login", response_model=AdminLoginResponse)
def admin_login(request: AdminLoginRequest, auth: AdminAuthService = Depends(get_admin_auth)):
    return auth.login(request.username, request.password)


@app.post("/admin/logout")
def admin_logout(
    admin_token: Optional[str] = Header(None, alias="X-Admin-Token"),
    auth: AdminAuthService = Depends(get_admin_auth)
):
    auth.logout(admin_token)
    return {"success": True, "message": "Logged out"}


@app.get("/admin/orders", response_model=List[Order])
def admin_list_orders(
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.list_all_orders()


@app.put("/admin/orders/{order_id}/status")
def admin_update_order_status(
    order_id: str,
    request: OrderStatusUpdate,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.update_order_status(order_id, request.status)


@app.delete("/admin/orders/{order_id}")
def admin_delete_order(
    order_id: str,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.delete_order(order_id)


@app.get("/admin/users", response_model=List[User])
def admin_list_users(
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.list_users()


@app.get("/admin/users/{user_id}", response_model=User)
def admin_get_user(
    user_id: str,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.get_user(user_id)


@app.put("/admin/users/{user_id}", response_model=User)
def admin_update_user(
    user_id: str,
    request: UserUpdateRequest,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    if not request.model_dump(exclude_none=True):
        raise ValidationError("No user fields to update")
    return api.update_user(user_id, request)


@app.delete("/admin/users/{user_id}")
def admin_delete_user(
    user_id: str,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.delete_user(user_id)


@app.post("/admin/products", response_model=Product)
def admin_create_product(
    request: ProductCreateRequest,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.create_product(request)


@app.put("/admin/products/{product_id}", response_model=Product)
def admin_update_product(
    product_id: str,
    request: ProductUpdateRequest,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.update_product(product_id, request)


@app.delete("/admin/products/{product_id}")
def admin_delete_product(
    product_id: str,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    return api.delete_product(product_id)


@app.put("/admin/products/{product_id}/stock", response_model=Product)
def admin_update_stock(
    product_id: str,
    request: StockChangeRequest,
    admin_id: str = Depends(require_admin),
    api: StorefrontApiClient = Depends(get_api_client)
):
    """Adjust stock by a relative amount"""
    if request.quantity_change == 0:
        raise ValidationError("Stock change must not be zero")
    return api.update_product_stock(product_id, request.quantity_change)


# Error handlers
@app.exception_handler(ValidationError)
async def validation_error_handler(request, exc):
    return JSONResponse(
        status_code=400,
        content={"error": "Validation error", "message": str(exc)}
    )


@app.exception_handler(CartLineNotFoundError)
async def line_not_found_handler(request, exc):
    return JSONResponse(
        status_code=404,
        content={"error": "Line not found", "message": str(exc)}
    )


@app.exception_handler(AdminAuthError)
async def admin_auth_error_handler(request, exc):
    return JSONResponse(
        status_code=401,
        content={"error": "Unauthorized", "message": str(exc)}
    )


@app.exception_handler(StorageConnectionError)
async def storage_error_handler(request, exc):
    return JSONResponse(
        status_code=503,
        content={"error": "Service unavailable", "message": "Cart storage unavailable"}
    )


@app.exception_handler(ApiUnavailableError)
async def api_unavailable_handler(request, exc):
    return JSONResponse(
        status_code=503,
        content={"error": "Service unavailable", "message": str(exc)}
    )


@app.exception_handler(ApiError)
async def api_error_handler(request, exc):
    # Upstream 5xx responses surface as a bad gateway
    status_code = exc.status_code if exc.status_code and exc.status_code < 500 else 502
    return JSONResponse(
        status_code=status_code,
        content={"error": "Storefront API error", "message": str(exc)}
    )


# Generic exception handler for unhandled errors
@app.exception_handler(Exception)
async def generic_exception_handler(request, exc):
    logger.error(
        f"Unhandled exception: {type(exc).__name__}: {exc}",
        exc_info=True
    )
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "message": str(exc),
            "type": type(exc).__name__
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=Config.APP_PORT)
