"""Domain events for the Order aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Order")
class OrderPlaced:
    """A cart became an order awaiting payment."""

    __version__ = 1

    order_id = Identifier(required=True)
    session_id = String(required=True)
    email = String(required=True)
    total_amount = Float(required=True)
    item_count = Integer(required=True)
    placed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderConfirmed:
    """Payment was captured."""

    __version__ = 1

    order_id = Identifier(required=True)
    transaction_id = String()
    confirmed_at = DateTime(required=True)


@checkout.event(part_of="Order")
class OrderPaymentFailed:
    """Payment was declined or could not be taken. The order is terminated."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String()
    failed_at = DateTime(required=True)
