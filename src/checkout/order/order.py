"""Order aggregate, the immutable result of checking out a cart.

Line items and the total are fixed when the order is placed; prices are
copied from the products at that moment. Only ``status`` and
``payment_status`` change afterwards, and only along these transitions::

    pending/pending --approved--> confirmed/paid
    pending/pending --declined--> failed/failed
    pending/pending --exhausted-> failed/failed

Later states (shipped, delivered, cancelled, refunded) are reached by
processes outside checkout.
"""

from datetime import UTC, datetime
from enum import Enum

from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from checkout.domain import checkout
from checkout.order.events import OrderConfirmed, OrderPaymentFailed, OrderPlaced
from checkout.shared.email import EmailAddress
from checkout.shared.money import as_float, line_total, sum_lines, to_decimal


class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


AWAITING_PAYMENT = (OrderStatus.PENDING, PaymentStatus.PENDING)
PAID = (OrderStatus.CONFIRMED, PaymentStatus.PAID)
PAYMENT_FAILED = (OrderStatus.FAILED, PaymentStatus.FAILED)

_VALID_TRANSITIONS = {
    AWAITING_PAYMENT: {PAID, PAYMENT_FAILED},
    PAID: set(),  # Terminal for checkout
    PAYMENT_FAILED: set(),  # Terminal
}


@checkout.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=200)
    quantity = Integer(required=True, min_value=1)
    price = Float(required=True, min_value=0.0)

    @property
    def subtotal(self):
        return line_total(self.quantity, self.price)


@checkout.aggregate
class Order:
    session_id = String(required=True, max_length=255)
    email = ValueObject(EmailAddress, required=True)
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_method_ref = String(required=True, max_length=255)
    total_amount = Float(required=True, min_value=0.0)
    items = HasMany(OrderItem)
    transaction_id = String(max_length=255)
    failure_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(cls, session_id, email, payment_method_ref, lines):
        """Build a pending order from ``(product, quantity)`` pairs.

        Each line snapshots the product's current name and price.
        """
        if not lines:
            raise ValidationError({"items": ["An order needs at least one item"]})

        items = [
            OrderItem(
                product_id=str(product.id),
                product_name=product.name,
                quantity=quantity,
                price=as_float(to_decimal(product.price)),
            )
            for product, quantity in lines
        ]
        total = sum_lines((item.quantity, item.price) for item in items)

        now = datetime.now(UTC)
        order = cls(
            session_id=session_id,
            email=EmailAddress(address=email),
            status=OrderStatus.PENDING.value,
            payment_status=PaymentStatus.PENDING.value,
            payment_method_ref=payment_method_ref,
            total_amount=as_float(total),
            items=items,
            created_at=now,
            updated_at=now,
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                session_id=session_id,
                email=email,
                total_amount=order.total_amount,
                item_count=order.item_count,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def state(self) -> tuple[OrderStatus, PaymentStatus]:
        return OrderStatus(self.status), PaymentStatus(self.payment_status)

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    def awaiting_payment(self) -> bool:
        return self.state == AWAITING_PAYMENT

    def is_paid(self) -> bool:
        return PaymentStatus(self.payment_status) == PaymentStatus.PAID

    def totals_match(self) -> bool:
        """The stored total equals the sum of the line subtotals."""
        return sum_lines((item.quantity, item.price) for item in self.items) == to_decimal(self.total_amount)

    # -------------------------------------------------------------------
    # Payment outcome
    # -------------------------------------------------------------------
    def _transition(self, target) -> None:
        current = self.state
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError(
                {
                    "status": [
                        f"Cannot move order from {current[0].value}/{current[1].value} "
                        f"to {target[0].value}/{target[1].value}"
                    ]
                }
            )
        self.status = target[0].value
        self.payment_status = target[1].value
        self.updated_at = datetime.now(UTC)

    def confirm_payment(self, transaction_id=None) -> None:
        self._transition(PAID)
        self.transaction_id = transaction_id

        self.raise_(
            OrderConfirmed(
                order_id=str(self.id),
                transaction_id=transaction_id,
                confirmed_at=self.updated_at,
            )
        )

    def fail_payment(self, reason=None) -> None:
        self._transition(PAYMENT_FAILED)
        self.failure_reason = (reason or "")[:500] or None

        self.raise_(
            OrderPaymentFailed(
                order_id=str(self.id),
                reason=self.failure_reason,
                failed_at=self.updated_at,
            )
        )
