"""
Cart store: an ordered list of cart lines mirrored to key-value storage.

Stock is pooled per product. Plain and customized lines of the same product
draw from one stock ceiling, so every quantity change is checked against the
sum of all lines for that product. Exceeding the ceiling is not an error: the
quantity is clamped and an advisory is sent to the notifier.
"""
import uuid
import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from pydantic import TypeAdapter, ValidationError as PydanticValidationError

from storefront.config import Config
from storefront.exceptions import StorageConnectionError
from storefront.models import CartLine, CartLineDraft, CartResponse, StockAdvisory
from storefront.notifications import Notifier, log_advisory
from storefront.storage import CartStorage

logger = logging.getLogger(__name__)

CART_DOCUMENT = TypeAdapter(List[CartLine])


def dump_lines(lines: Sequence[CartLine]) -> str:
    """Serialize cart lines to the persisted JSON document"""
    return CART_DOCUMENT.dump_json(list(lines)).decode()


def load_lines(document: str) -> List[CartLine]:
    """Parse a persisted JSON document back into cart lines"""
    lines = CART_DOCUMENT.validate_json(document)
    ids = [line.id for line in lines]
    if len(set(ids)) != len(ids):
        raise ValueError("cart document contains duplicate line ids")
    return lines


class CartStore:
    """Cart lines for one cart, persisted after every mutation"""

    def __init__(
        self,
        storage: CartStorage,
        notify: Optional[Notifier] = None,
        key: str = Config.CART_STORAGE_KEY
    ):
        self.storage = storage
        self.notify = notify or log_advisory
        self.key = key
        self._lines: List[CartLine] = self._load()

    def _load(self) -> List[CartLine]:
        try:
            document = self.storage.get(self.key)
        except StorageConnectionError as e:
            logger.error(f"Failed to read cart {self.key}, starting empty: {e}")
            return []

        if not document:
            return []

        try:
            return load_lines(document)
        except (PydanticValidationError, ValueError) as e:
            logger.error(f"Discarding corrupt cart document {self.key}: {e}")
            return []

    def _persist(self) -> None:
        self.storage.set(self.key, dump_lines(self._lines))

    def _new_id(self) -> str:
        taken = {line.id for line in self._lines}
        line_id = uuid.uuid4().hex
        while line_id in taken:
            line_id = uuid.uuid4().hex
        return line_id

    def _pooled_quantity(self, product_id: str, exclude_id: Optional[str] = None) -> int:
        return sum(
            line.quantity
            for line in self._lines
            if line.product_id == product_id and line.id != exclude_id
        )

    @property
    def lines(self) -> List[CartLine]:
        return list(self._lines)

    @property
    def item_count(self) -> int:
        return sum(line.quantity for line in self._lines)

    @property
    def total_price(self) -> Decimal:
        return sum((line.line_total for line in self._lines), Decimal("0"))

    def find_line(self, line_id: str) -> Optional[CartLine]:
        for line in self._lines:
            if line.id == line_id:
                return line
        return None

    def add_item(self, draft: CartLineDraft, quantity: Optional[int] = None) -> Optional[CartLine]:
        """
        Add units of a product variant to the cart.

        The quantity is checked against the product's pooled stock and
        clamped when it would exceed the ceiling. An identical line is
        merged into; otherwise a new line is appended.

        Returns:
            The created or updated line, or None when no stock is left
        """
        desired = draft.quantity if quantity is None else quantity
        if desired < 1:
            return None

        already_in_cart = self._pooled_quantity(draft.product_id)

        if draft.stock_ceiling is None:
            logger.warning(f"No stock information for product {draft.product_id}; not enforcing a limit")
        elif already_in_cart + desired > draft.stock_ceiling:
            allowed = max(0, draft.stock_ceiling - already_in_cart)
            label = draft.name or draft.product_id
            if allowed == 0:
                message = (
                    f"Only {draft.stock_ceiling} of {label} in stock and "
                    f"{already_in_cart} already in your cart. No more can be added."
                )
            else:
                message = (
                    f"Only {draft.stock_ceiling} of {label} in stock and "
                    f"{already_in_cart} already in your cart. Adding {allowed}."
                )
            self.notify(StockAdvisory(
                product_id=draft.product_id,
                stock_ceiling=draft.stock_ceiling,
                in_cart=already_in_cart,
                requested=desired,
                allowed=allowed,
                message=message,
            ))
            if allowed == 0:
                return None
            desired = allowed

        for line in self._lines:
            if line.same_line_as(draft):
                line.quantity += desired
                self._persist()
                return line

        line = CartLine(**draft.model_dump(exclude={"quantity", "id"}), quantity=desired, id=self._new_id())
        self._lines.append(line)
        self._persist()
        return line

    def update_quantity(self, line_id: str, quantity: int) -> Optional[CartLine]:
        """Set a line's quantity, clamped to the product's remaining pooled stock"""
        if quantity < 1:
            return None

        line = self.find_line(line_id)
        if line is None:
            return None

        other_quantity = self._pooled_quantity(line.product_id, exclude_id=line.id)

        if line.stock_ceiling is None:
            logger.warning(f"No stock information for product {line.product_id}; not enforcing a limit")
        elif other_quantity + quantity > line.stock_ceiling:
            max_allowed = max(0, line.stock_ceiling - other_quantity)
            pooled = other_quantity + line.quantity
            self.notify(StockAdvisory(
                product_id=line.product_id,
                stock_ceiling=line.stock_ceiling,
                in_cart=pooled,
                requested=quantity,
                allowed=max_allowed,
                message=(
                    f"Only {line.stock_ceiling} of {line.name or line.product_id} in stock "
                    f"and {pooled} in your cart across all variants. "
                    f"This line can hold at most {max_allowed}."
                ),
            ))
            if max_allowed < 1:
                # Lines never drop below one unit; removal is explicit
                return line
            quantity = max_allowed

        line.quantity = quantity
        self._persist()
        return line

    def remove_item(self, line_id: str) -> bool:
        """Drop a line; returns whether anything was removed"""
        remaining = [line for line in self._lines if line.id != line_id]
        removed = len(remaining) != len(self._lines)
        self._lines = remaining
        self._persist()
        return removed

    def clear_cart(self) -> None:
        self._lines = []
        self._persist()

    def snapshot(self, cart_id: Optional[str] = None) -> CartResponse:
        return CartResponse(
            cart_id=cart_id,
            lines=self.lines,
            item_count=self.item_count,
            total_price=self.total_price,
        )
