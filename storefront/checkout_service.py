"""
Checkout service for validating a cart and placing the order with the remote API.
"""
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from storefront.api_client import StorefrontApiClient
from storefront.cart_service import CartService
from storefront.exceptions import ValidationError
from storefront.models import CartLine, CheckoutResponse

logger = logging.getLogger(__name__)


def build_order_payload(lines: List[CartLine], shipping_address: str) -> Dict[str, Any]:
    """Translate cart lines into the remote API's order document"""
    items = []
    for line in lines:
        item: Dict[str, Any] = {"product_id": line.product_id, "quantity": line.quantity}
        if line.is_customized:
            details = [detail.model_dump(mode="json") for detail in line.customizations]
            item.update(
                customization_price=float(line.customization_price),
                customization_details=details,
                price_adjustment=float(line.customization_price),
            )
        items.append(item)

    total_price = sum((line.line_total for line in lines), Decimal("0"))
    total_customization_price = sum(
        (line.customization_price * line.quantity for line in lines if line.is_customized),
        Decimal("0"),
    )

    payload: Dict[str, Any] = {
        "items": items,
        "shipping_address": shipping_address,
        "total_price": float(total_price),
        "total_customization_price": float(total_customization_price),
        "include_customization_in_total": True,
    }

    custom_models = [
        line.model_url
        for line in lines
        if line.is_customized and line.model_url and "customized_" in line.model_url
    ]
    if custom_models:
        payload["custom_models"] = custom_models
        payload["file_names"] = [url.rsplit("/", 1)[-1] for url in custom_models]

    return payload


class CheckoutService:
    """Service for checkout operations"""

    def __init__(self, cart_service: CartService, api: StorefrontApiClient):
        self.cart_service = cart_service
        self.api = api

    def start_checkout(
        self,
        cart_id: str,
        token: Optional[str],
        shipping_address: Optional[str] = None
    ) -> CheckoutResponse:
        """
        Start checkout process:
        1. Get cart contents
        2. Resolve the shipping address (request, then user profile)
        3. Create the order through the remote API
        4. Clear the cart

        Args:
            cart_id: Cart identifier
            token: User bearer token issued by the identity service
            shipping_address: Optional address overriding the profile

        Returns:
            CheckoutResponse with order details
        """
        store = self.cart_service.open_cart(cart_id)
        lines = store.lines

        if not lines:
            raise ValidationError("Cannot checkout empty cart")

        if not shipping_address:
            profile = self.api.get_profile(token)
            shipping_address = profile.shipping_address

        if not shipping_address:
            raise ValidationError("Please add your shipping information before checkout")

        payload = build_order_payload(lines, shipping_address)
        logger.info(f"Creating order with {len(lines)} lines, total {payload['total_price']}")

        response = self.api.create_order(payload, token)
        order = response.get("order") or {}
        order_id = order.get("order_id")

        total = store.total_price
        store.clear_cart()

        return CheckoutResponse(
            order_id=order_id,
            cart_id=cart_id,
            total=total,
            items=lines,
            message=response.get("message") or "Order placed successfully. Cart has been cleared.",
        )
