"""Payment gateway port (abstract interface).

Defines the contract that payment gateway adapters implement. The payment
stage only ever talks to this interface, so the simulated gateway can be
swapped for a real one without touching the pipeline.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


class ChargeOutcome(Enum):
    APPROVED = "approved"
    DECLINED = "declined"
    ERROR = "error"


@dataclass(frozen=True)
class ChargeResult:
    """Result of a charge attempt.

    ``DECLINED`` is a definitive business answer. ``ERROR`` means the attempt
    could not be processed and may be retried.
    """

    outcome: ChargeOutcome
    transaction_id: str | None = None
    reason: str | None = None

    @property
    def approved(self) -> bool:
        return self.outcome == ChargeOutcome.APPROVED


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def charge(self, payment_method_ref: str, amount: float, idempotency_key: str) -> ChargeResult:
        """Charge ``amount`` to the stored payment method.

        ``idempotency_key`` is stable across retries of the same order, so a
        gateway that honours it never charges twice.
        """
        ...
