"""Domain events for the Job aggregate."""

from protean.fields import DateTime, Identifier, Integer, String, Text

from checkout.domain import checkout


@checkout.event(part_of="Job")
class JobEnqueued:
    __version__ = 1

    job_id = Identifier(required=True)
    stage = String(required=True)
    lane = String(required=True)
    order_id = Identifier()
    enqueued_at = DateTime(required=True)


@checkout.event(part_of="Job")
class JobRetryScheduled:
    """A failed attempt was put back on its lane after a backoff delay."""

    __version__ = 1

    job_id = Identifier(required=True)
    stage = String(required=True)
    attempts = Integer(required=True)
    error = Text()
    available_at = DateTime(required=True)


@checkout.event(part_of="Job")
class JobDeadLettered:
    """A job ran out of attempts or failed terminally. Needs an operator."""

    __version__ = 1

    job_id = Identifier(required=True)
    stage = String(required=True)
    order_id = Identifier()
    attempts = Integer(required=True)
    error = Text()


@checkout.event(part_of="Job")
class JobDropped:
    __version__ = 1

    job_id = Identifier(required=True)
    stage = String(required=True)
    dropped_at = DateTime(required=True)


@checkout.event(part_of="Job")
class JobRequeued:
    __version__ = 1

    job_id = Identifier(required=True)
    stage = String(required=True)
    requeued_at = DateTime(required=True)
