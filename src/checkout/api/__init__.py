"""Checkout API package."""

from checkout.api.routes import cart_router, job_router, order_router

__all__ = ["cart_router", "order_router", "job_router"]
