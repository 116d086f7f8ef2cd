"""
Request logging for the storefront API.

Cart routes record what they did on `request.state.cart_audit`; the
middleware logs it with the request, keyed by a hashed cart id, and exposes
the number of stock advisories in a response header.
"""
import time
import hashlib
import logging
from typing import Callable, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from storefront.models import CartResponse

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def hash_identifier(identifier: str) -> str:
    """Hash identifier for logging (no PII)"""
    return hashlib.sha256(identifier.encode()).hexdigest()[:8]


def audit_cart(request: Request, cart: CartResponse, line_id: Optional[str] = None) -> CartResponse:
    """Attach the outcome of a cart operation to the request for logging"""
    request.state.cart_audit = {
        "line_id": line_id,
        "lines": len(cart.lines),
        "item_count": cart.item_count,
        "advisories": len(cart.advisories),
    }
    return cart


class CartAuditMiddleware(BaseHTTPMiddleware):
    """Logs each request's status and latency, plus the cart audit on cart routes"""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        start_time = time.perf_counter()
        response = await call_next(request)
        latency_ms = round((time.perf_counter() - start_time) * 1000, 2)

        cart_id = request.headers.get("X-Cart-ID")
        extra = {
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_ms": latency_ms,
            "hashed_cart_id": hash_identifier(cart_id) if cart_id else None,
        }
        message = f"{request.method} {request.url.path} {response.status_code} {latency_ms}ms"

        audit = getattr(request.state, "cart_audit", None)
        if audit:
            extra.update(audit)
            message += f" cart={extra['hashed_cart_id']} items={audit['item_count']}"
            if audit["advisories"]:
                message += f" advisories={audit['advisories']}"
                response.headers["X-Stock-Advisories"] = str(audit["advisories"])

        logger.info(message, extra=extra)
        response.headers["X-Response-Time-Ms"] = f"{latency_ms:.2f}"
        return response
