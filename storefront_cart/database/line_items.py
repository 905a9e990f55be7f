"""Line-item storage for a single cart"""

import uuid
from typing import Callable, Iterable, Optional

from ..core.errors import InvalidQuantity, ItemNotFound
from ..models.cart import AddItemRequest, CartItem


def _new_item_id() -> str:
    return str(uuid.uuid4())


def check_quantity(quantity, allow_zero: bool = False) -> int:
    """Reject anything that is not a usable integer quantity"""
    # bool is an int subclass; True must not count as a quantity of one
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantity(f"Quantity must be an integer, got {quantity!r}")
    if quantity < 0 or (quantity == 0 and not allow_zero):
        raise InvalidQuantity(f"Quantity must be positive, got {quantity}")
    return quantity


class LineItemStore:
    """
    Ordered, mutable collection of cart lines keyed by item id.

    The store works on its own copies of the items it is given, so a
    controller can build the next cart snapshot in a store and throw
    the store away if anything fails before commit.
    """

    def __init__(
        self,
        items: Iterable[CartItem] = (),
        id_factory: Callable[[], str] = _new_item_id,
    ):
        self._items: list[CartItem] = [item.model_copy(deep=True) for item in items]
        self._id_factory = id_factory

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def __contains__(self, item_id: str) -> bool:
        return self.get(item_id) is not None

    @property
    def items(self) -> list[CartItem]:
        """Copy of the lines in insertion order"""
        return [item.model_copy(deep=True) for item in self._items]

    def get(self, item_id: str) -> Optional[CartItem]:
        return next((item for item in self._items if item.id == item_id), None)

    def find_line(self, product_id: str, variant) -> Optional[CartItem]:
        """Existing line for the same product and variant, if any"""
        return next(
            (
                item for item in self._items
                if item.product_id == product_id and item.variant == variant
            ),
            None,
        )

    def add(self, candidate: AddItemRequest) -> str:
        """Merge into a matching line or append a new one; returns the item id"""
        quantity = check_quantity(candidate.quantity)

        existing_item = self.find_line(candidate.product_id, candidate.variant)
        if existing_item:
            existing_item.quantity += quantity
            return existing_item.id

        cart_item = CartItem(
            id=self._id_factory(),
            product_id=candidate.product_id,
            name=candidate.name,
            price=candidate.price,
            image=candidate.image,
            quantity=quantity,
            variant=candidate.variant,
            nutritional_info=candidate.nutritional_info,
        )
        self._items.append(cart_item)
        return cart_item.id

    def remove(self, item_id: str) -> bool:
        """Delete a line; returns False when there was nothing to delete"""
        before = len(self._items)
        self._items = [item for item in self._items if item.id != item_id]
        return len(self._items) != before

    def set_quantity(self, item_id: str, quantity: int) -> None:
        """Set a line's quantity; zero removes the line"""
        quantity = check_quantity(quantity, allow_zero=True)

        item = self.get(item_id)
        if not item:
            raise ItemNotFound(f"Item {item_id} is not in the cart")

        if quantity == 0:
            self.remove(item_id)
        else:
            item.quantity = quantity

    def clear(self) -> None:
        self._items = []
