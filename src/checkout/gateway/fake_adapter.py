"""Deterministic payment gateway for tests.

Configured to always approve, always decline, or always fail with a
transport error. ``script()`` queues one-off outcomes ahead of the
configured default, which is how retry sequences are exercised.
"""

from uuid import uuid4

from checkout.gateway.port import ChargeOutcome, ChargeResult, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.outcome: ChargeOutcome = ChargeOutcome.APPROVED
        self.reason: str = "Card declined"
        self.calls: list[dict] = []
        self._scripted: list[ChargeOutcome] = []

    def configure(self, outcome: ChargeOutcome | str, reason: str = "Card declined") -> None:
        """Set the outcome returned once any scripted outcomes are used up."""
        self.outcome = ChargeOutcome(outcome)
        self.reason = reason

    def script(self, *outcomes: ChargeOutcome | str) -> None:
        self._scripted.extend(ChargeOutcome(outcome) for outcome in outcomes)

    def charge(self, payment_method_ref: str, amount: float, idempotency_key: str) -> ChargeResult:
        self.calls.append(
            {
                "method": "charge",
                "payment_method_ref": payment_method_ref,
                "amount": amount,
                "idempotency_key": idempotency_key,
            }
        )

        outcome = self._scripted.pop(0) if self._scripted else self.outcome
        if outcome == ChargeOutcome.APPROVED:
            return ChargeResult(outcome=outcome, transaction_id=f"fake_txn_{uuid4().hex[:12]}")
        if outcome == ChargeOutcome.DECLINED:
            return ChargeResult(outcome=outcome, reason=self.reason)
        return ChargeResult(outcome=outcome, reason="Gateway unavailable")
