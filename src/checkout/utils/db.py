"""Store access helpers.

The checkout core treats the store as a single-writer resource: every unit of
work runs inside ``exclusive_access()``. That is the lock the Inventory Stage's
read-modify-write depends on, and it also keeps concurrent workers from
interleaving commits on providers (such as the memory provider) that commit a
whole snapshot at once.
"""

import threading
from contextlib import contextmanager

from protean.domain import Domain
from protean.utils.globals import current_domain

PAGE_SIZE = 100

_store_lock = threading.RLock()


@contextmanager
def exclusive_access():
    """Hold the store lock for the duration of the block (re-entrant)."""
    with _store_lock:
        yield


def process(command):
    """Process a command synchronously inside the single-writer section.

    Returns whatever the command handler returns. The handler's unit of work
    has committed (or rolled back) by the time this returns.
    """
    with _store_lock:
        return current_domain.process(command, asynchronous=False)


def iterate(query):
    """Yield every record matched by a DAO query, one page at a time."""
    offset = 0
    while True:
        page = query.offset(offset).limit(PAGE_SIZE).all()
        yield from page.items
        offset += PAGE_SIZE
        if offset >= page.total:
            break


def reset_data(domain: Domain):
    """Clear all repositories and the event store of ``domain``."""
    with domain.domain_context(), _store_lock:
        for _, provider in domain.providers.items():
            provider._data_reset()

        domain.event_store.store._data_reset()
