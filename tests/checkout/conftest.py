import pytest
from protean.integrations.pytest import DomainFixture

from checkout.channel import reset_channels, set_channel
from checkout.channel.fake_email import FakeEmailAdapter
from checkout.config import PipelineSettings
from checkout.gateway import reset_gateway, set_gateway
from checkout.gateway.fake_adapter import FakeGateway


@pytest.fixture(scope="session")
def checkout_bed():
    from checkout.domain import checkout

    bed = DomainFixture(checkout)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(checkout_bed):
    from checkout.domain import checkout
    from checkout.utils.db import reset_data

    with checkout_bed.domain_context():
        yield

    reset_data(checkout)
    reset_gateway()
    reset_channels()


@pytest.fixture()
def gateway():
    fake = FakeGateway()
    set_gateway(fake)
    return fake


@pytest.fixture()
def mailbox():
    fake = FakeEmailAdapter()
    set_channel(fake)
    return fake


@pytest.fixture()
def settings():
    """Retries become ready immediately so a drain runs a job to its end."""
    return PipelineSettings(workers=4, poll_interval=0.01, backoff_base=0.0, backoff_cap=0.0, stall_timeout=300.0)


@pytest.fixture()
def queue(settings):
    from checkout.jobs.queue import JobQueue

    return JobQueue(settings)


@pytest.fixture()
def pool(checkout_bed, queue, settings):
    from checkout.domain import checkout
    from checkout.jobs.worker import WorkerPool

    workers = WorkerPool(checkout, queue=queue, settings=settings)
    yield workers
    workers.stop()
