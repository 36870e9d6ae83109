"""Cart aggregate, a session-keyed collection of (product, quantity) lines.

Lines are bounded by the product's inventory count at the moment they are
written. The bound is not a reservation: stock is only debited after payment.
"""

from datetime import UTC, datetime

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, HasMany, Identifier, Integer, String

from checkout.cart.events import CartCleared, CartItemAdded, CartItemRemoved, CartQuantityUpdated
from checkout.domain import checkout
from checkout.errors import CartItemNotFound, InsufficientInventory, InvalidQuantity


@checkout.entity(part_of="Cart")
class CartItem:
    product_id = Identifier(required=True)
    quantity = Integer(required=True, min_value=1)
    added_at = DateTime()


@checkout.aggregate
class Cart:
    session_id = String(required=True, max_length=255, unique=True)
    items = HasMany(CartItem)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def one_line_per_product(self):
        product_ids = [str(item.product_id) for item in self.items]
        if len(product_ids) != len(set(product_ids)):
            raise ValidationError({"items": ["A product can appear only once in a cart"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, session_id):
        now = datetime.now(UTC)
        return cls(session_id=session_id, created_at=now, updated_at=now)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def line_for(self, product_id):
        return next((i for i in self.items if str(i.product_id) == str(product_id)), None)

    def find_item(self, item_id):
        return next((i for i in self.items if str(i.id) == str(item_id)), None)

    def quantity_of(self, product_id) -> int:
        line = self.line_for(product_id)
        return line.quantity if line else 0

    def is_empty(self) -> bool:
        return not self.items

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    # -------------------------------------------------------------------
    # Item management
    # -------------------------------------------------------------------
    def add_item(self, product_id, quantity, available):
        """Add ``quantity`` of a product, merging into its existing line.

        ``available`` is the product's current inventory count. Fails without
        any change when the merged line would exceed it.
        """
        if quantity is None or quantity <= 0:
            raise InvalidQuantity()

        existing = self.line_for(product_id)
        line_quantity = (existing.quantity if existing else 0) + quantity
        if line_quantity > available:
            raise InsufficientInventory(available=available)

        now = datetime.now(UTC)
        if existing:
            existing.quantity = line_quantity
            item_id = str(existing.id)
        else:
            item = CartItem(product_id=product_id, quantity=quantity, added_at=now)
            self.add_items(item)
            item_id = str(item.id)

        self.updated_at = now

        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                session_id=self.session_id,
                item_id=item_id,
                product_id=str(product_id),
                quantity=quantity,
                line_quantity=line_quantity,
            )
        )
        return self.find_item(item_id)

    def set_item_quantity(self, item_id, quantity, available):
        """Overwrite a line's quantity. Zero or less removes the line.

        Returns the updated line, or ``None`` when it was removed.
        """
        item = self.find_item(item_id)
        if item is None:
            raise CartItemNotFound(item_id)

        if quantity <= 0:
            self.remove_item(item_id)
            return None

        if quantity > available:
            raise InsufficientInventory(available=available)

        previous_quantity = item.quantity
        item.quantity = quantity
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartQuantityUpdated(
                cart_id=str(self.id),
                item_id=str(item_id),
                previous_quantity=previous_quantity,
                new_quantity=quantity,
            )
        )
        return item

    def remove_item(self, item_id):
        item = self.find_item(item_id)
        if item is None:
            raise CartItemNotFound(item_id)

        self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartItemRemoved(
                cart_id=str(self.id),
                item_id=str(item_id),
                product_id=str(item.product_id),
            )
        )

    def clear(self):
        """Remove every line. Called only while an order is being assembled."""
        removed = list(self.items)
        for item in removed:
            self.remove_items(item)
        self.updated_at = datetime.now(UTC)

        self.raise_(
            CartCleared(
                cart_id=str(self.id),
                session_id=self.session_id,
                items_removed=len(removed),
            )
        )
