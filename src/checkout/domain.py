"""Checkout bounded context: cart, order placement and fulfillment.

Owns the session cart, the inventory ledger, the cart-to-order unit of work,
and the job queue that carries every order through payment, stock debit,
and confirmation.
"""

import structlog
from protean.domain import Domain

from checkout.utils.logging import configure_logging

configure_logging()

checkout = Domain(name="checkout")

logger = structlog.get_logger(__name__)
