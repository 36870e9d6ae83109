"""Domain events for the Cart aggregate."""

from protean.fields import Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Cart")
class CartItemAdded:
    """A product was added to a cart, or an existing line grew."""

    __version__ = 1

    cart_id = Identifier(required=True)
    session_id = String(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    line_quantity = Integer(required=True)


@checkout.event(part_of="Cart")
class CartQuantityUpdated:
    """The quantity of a cart line was overwritten."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    previous_quantity = Integer(required=True)
    new_quantity = Integer(required=True)


@checkout.event(part_of="Cart")
class CartItemRemoved:
    """A line was removed from a cart."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)


@checkout.event(part_of="Cart")
class CartCleared:
    """All lines were removed, normally because the cart became an order."""

    __version__ = 1

    cart_id = Identifier(required=True)
    session_id = String(required=True)
    items_removed = Integer(required=True)
