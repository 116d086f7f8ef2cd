"""
Delivery of stock advisories raised by the cart store.
"""
import logging
from typing import Callable, List

from storefront.models import StockAdvisory

logger = logging.getLogger(__name__)

Notifier = Callable[[StockAdvisory], None]


def log_advisory(advisory: StockAdvisory) -> None:
    """Default notifier: write the advisory to the log"""
    logger.warning(
        f"Stock advisory for product {advisory.product_id}: {advisory.message}",
        extra={
            "product_id": advisory.product_id,
            "stock_ceiling": advisory.stock_ceiling,
            "in_cart": advisory.in_cart,
            "requested": advisory.requested,
            "allowed": advisory.allowed,
        }
    )


class AdvisoryCollector:
    """Notifier that keeps advisories so they can be returned to the client"""

    def __init__(self, forward: Notifier = log_advisory):
        self.advisories: List[StockAdvisory] = []
        self.forward = forward

    def __call__(self, advisory: StockAdvisory) -> None:
        self.advisories.append(advisory)
        if self.forward is not None:
            self.forward(advisory)
