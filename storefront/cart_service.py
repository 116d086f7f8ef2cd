"""
Cart service: binds cart stores to cart ids and fills cart lines from the catalog.
"""
import hashlib
import logging
from decimal import Decimal
from typing import Optional

from storefront.api_client import StorefrontApiClient
from storefront.cart_store import CartStore
from storefront.config import Config
from storefront.exceptions import CartLineNotFoundError, ValidationError
from storefront.models import AddCartItemRequest, CartLineDraft, CartResponse
from storefront.notifications import AdvisoryCollector
from storefront.storage import CartStorage

logger = logging.getLogger(__name__)


class CartService:
    """Service for cart operations"""

    def __init__(self, storage: CartStorage, api: StorefrontApiClient):
        self.storage = storage
        self.api = api

    def _get_cart_key(self, cart_id: str) -> str:
        """Generate storage key for cart"""
        return f"{Config.CART_STORAGE_KEY}:{cart_id}"

    def _hash_cart_id(self, cart_id: str) -> str:
        """Hash cart ID for logging (no PII)"""
        return hashlib.sha256(cart_id.encode()).hexdigest()[:8]

    def open_cart(self, cart_id: str, collector: Optional[AdvisoryCollector] = None) -> CartStore:
        """Load the store for a cart id"""
        if not cart_id or not cart_id.strip():
            raise ValidationError("Cart ID is required")
        return CartStore(self.storage, notify=collector, key=self._get_cart_key(cart_id.strip()))

    def _respond(self, cart_id: str, store: CartStore, collector: AdvisoryCollector) -> CartResponse:
        response = store.snapshot(cart_id)
        response.advisories = list(collector.advisories)
        return response

    def get_cart(self, cart_id: str) -> CartResponse:
        """Get cart contents"""
        return self.open_cart(cart_id).snapshot(cart_id)

    def add_item(self, cart_id: str, request: AddCartItemRequest) -> CartResponse:
        """
        Add a product to the cart using current catalog data.

        The catalog supplies the base unit price, name and stock ceiling, so
        clients cannot lower the base price or bypass the stock limit.
        Customization prices come from the request.
        """
        product = self.api.get_product(request.product_id)

        customization_price = request.customization_price
        if customization_price is None:
            customization_price = sum(
                (detail.price for detail in request.customizations), Decimal("0")
            )

        draft = CartLineDraft(
            product_id=product.product_id,
            name=product.name,
            quantity=request.quantity,
            unit_price=product.price,
            customization_price=customization_price if request.is_customized else Decimal("0"),
            # Oversold catalog entries report negative stock
            stock_ceiling=max(0, product.quantity) if product.quantity is not None else None,
            is_customized=request.is_customized,
            customizations=request.customizations if request.is_customized else [],
            image_url=request.image_url,
            model_url=request.model_url or product.model_url,
            base_model_url=product.model_url,
        )

        collector = AdvisoryCollector()
        store = self.open_cart(cart_id, collector)
        line = store.add_item(draft)
        logger.info(
            f"Cart {self._hash_cart_id(cart_id)}: add {request.quantity} x {product.product_id} "
            f"-> {line.quantity if line else 'rejected'}"
        )
        return self._respond(cart_id, store, collector)

    def update_quantity(self, cart_id: str, line_id: str, quantity: int) -> CartResponse:
        """Update line quantity; quantities below 1 leave the cart unchanged"""
        collector = AdvisoryCollector()
        store = self.open_cart(cart_id, collector)
        if store.find_line(line_id) is None:
            raise CartLineNotFoundError(line_id)
        store.update_quantity(line_id, quantity)
        return self._respond(cart_id, store, collector)

    def remove_item(self, cart_id: str, line_id: str) -> bool:
        """Remove line from cart"""
        return self.open_cart(cart_id).remove_item(line_id)

    def clear_cart(self, cart_id: str) -> None:
        """Clear all lines from cart"""
        self.open_cart(cart_id).clear_cart()
