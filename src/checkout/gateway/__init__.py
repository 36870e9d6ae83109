"""Payment gateway factory.

Provides get_gateway() / set_gateway() to swap implementations:
- SimulatedGateway (default) approves at random, see PAYMENT_APPROVAL_RATE
- FakeGateway is deterministic, for tests (PAYMENT_GATEWAY=fake)
"""

import os

from checkout.gateway.fake_adapter import FakeGateway
from checkout.gateway.port import PaymentGateway
from checkout.gateway.simulated_adapter import SimulatedGateway

_current_gateway: PaymentGateway | None = None


def _build_gateway() -> PaymentGateway:
    kind = os.environ.get("PAYMENT_GATEWAY", "simulated").lower()
    if kind == "fake":
        return FakeGateway()
    if kind == "simulated":
        return SimulatedGateway(approval_rate=float(os.environ.get("PAYMENT_APPROVAL_RATE", "0.9")))
    raise ValueError(f"Unknown payment gateway: {kind}")


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway, building it from the environment on first use."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = _build_gateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None
