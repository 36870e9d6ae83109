"""The order pipeline as an explicit state machine.

Each outcome moves an order between states and carries the stages that must
be enqueued, in the same unit of work, when the move is committed:

=========  ================  ================  ========================
outcome    from              to                enqueues
=========  ================  ================  ========================
placed     (new)             pending/pending   payment
approved   pending/pending   confirmed/paid    inventory, notification
declined   pending/pending   failed/failed
exhausted  pending/pending   failed/failed
=========  ================  ================  ========================

Stages of one order therefore run strictly in sequence, whatever order the
queue hands jobs out in.
"""

from dataclasses import dataclass
from enum import Enum

from checkout.jobs.dispatch import enqueue
from checkout.jobs.lanes import Lane
from checkout.order.order import AWAITING_PAYMENT, PAID, PAYMENT_FAILED


class Stage(Enum):
    PAYMENT = "payment"
    INVENTORY = "inventory"
    NOTIFICATION = "notification"


@dataclass(frozen=True)
class StageSettings:
    lane: Lane
    retry_budget: int


STAGES = {
    Stage.PAYMENT: StageSettings(lane=Lane.CRITICAL, retry_budget=3),
    Stage.INVENTORY: StageSettings(lane=Lane.DEFAULT, retry_budget=5),
    Stage.NOTIFICATION: StageSettings(lane=Lane.LOW, retry_budget=3),
}


class Outcome(Enum):
    PLACED = "placed"
    APPROVED = "approved"
    DECLINED = "declined"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class Transition:
    source: tuple | None
    target: tuple
    enqueues: tuple[Stage, ...]


TRANSITIONS = {
    Outcome.PLACED: Transition(None, AWAITING_PAYMENT, (Stage.PAYMENT,)),
    Outcome.APPROVED: Transition(AWAITING_PAYMENT, PAID, (Stage.INVENTORY, Stage.NOTIFICATION)),
    Outcome.DECLINED: Transition(AWAITING_PAYMENT, PAYMENT_FAILED, ()),
    Outcome.EXHAUSTED: Transition(AWAITING_PAYMENT, PAYMENT_FAILED, ()),
}


def obligations(outcome: Outcome) -> tuple[Stage, ...]:
    return TRANSITIONS[outcome].enqueues


def enqueue_obligations(outcome: Outcome, order, **payload) -> list:
    """Enqueue the stages ``outcome`` obliges, within the caller's unit of work."""
    jobs = []
    for stage in obligations(outcome):
        settings = STAGES[stage]
        jobs.append(
            enqueue(
                lane=settings.lane,
                stage=stage.value,
                payload={"order_id": str(order.id), **payload},
                retry_budget=settings.retry_budget,
                order_id=order.id,
            )
        )
    return jobs
