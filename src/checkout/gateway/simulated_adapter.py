"""Simulated payment gateway with random approvals.

Stands in for a real processor in development and demos: each charge is
approved with probability ``approval_rate`` and declined otherwise.
"""

import random
from uuid import uuid4

import structlog

from checkout.gateway.port import ChargeOutcome, ChargeResult, PaymentGateway

logger = structlog.get_logger(__name__)


class SimulatedGateway(PaymentGateway):
    def __init__(self, approval_rate: float = 0.9, rng: random.Random | None = None) -> None:
        if not 0.0 <= approval_rate <= 1.0:
            raise ValueError("approval_rate must be between 0 and 1")
        self.approval_rate = approval_rate
        self._rng = rng or random.Random()

    def charge(self, payment_method_ref: str, amount: float, idempotency_key: str) -> ChargeResult:
        if self._rng.random() < self.approval_rate:
            result = ChargeResult(
                outcome=ChargeOutcome.APPROVED,
                transaction_id=f"sim_txn_{uuid4().hex[:12]}",
            )
        else:
            result = ChargeResult(outcome=ChargeOutcome.DECLINED, reason="Payment declined")

        logger.info(
            "simulated_charge",
            payment_method_ref=payment_method_ref,
            amount=amount,
            idempotency_key=idempotency_key,
            outcome=result.outcome.value,
        )
        return result
