"""BDD tests for the checkout flow."""

from checkout.api.mutations import add_to_cart, create_order, update_cart_item
from checkout.cart.cart import Cart
from checkout.inventory.product import Product
from checkout.jobs.job import JobStatus
from checkout.order.order import Order
from protean import current_domain
from pytest_bdd import parsers, scenarios, then, when

scenarios("features/checkout.feature")


def _cart(session_id):
    return current_domain.repository_for(Cart).for_session(session_id)


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the shopper adds {quantity:d} "{name}" to the cart'))
def shopper_adds(products, session_id, outcome, quantity, name):
    outcome["result"] = add_to_cart(session_id, products[name], quantity)


@when(parsers.cfparse('the shopper sets "{name}" to {quantity:d}'))
def shopper_sets(products, session_id, outcome, name, quantity):
    item = _cart(session_id).line_for(products[name])
    outcome["result"] = update_cart_item(str(item.id), quantity)


@when(parsers.cfparse('the shopper checks out as "{email}"'))
def shopper_checks_out(session_id, outcome, queue, email):
    outcome["result"] = create_order(session_id, email, "pm_card_visa", queue=queue)
    assert outcome["result"].ok, outcome["result"].errors


@when("the workers drain the queue")
def workers_drain(pool, mailbox):
    pool.run_pending()


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the cart errors with "{message}"'))
def cart_errors(outcome, message):
    assert outcome["result"].value is None
    assert outcome["result"].errors == [message]


@then("the cart update succeeds")
def cart_update_succeeds(outcome):
    assert outcome["result"].errors == []


@then(parsers.cfparse('the cart holds {quantity:d} "{name}"'))
def cart_holds(products, session_id, quantity, name):
    cart = _cart(session_id)
    held = cart.quantity_of(products[name]) if cart else 0
    assert held == quantity


@then("the cart is empty")
def cart_is_empty(session_id):
    assert _cart(session_id).is_empty()


@then(parsers.cfparse("the order total is {total:f}"))
def order_total(outcome, total):
    order = outcome["result"].value
    assert order.total_amount == total
    assert order.totals_match()


@then(parsers.cfparse('the order is "{status}" with payment "{payment_status}"'))
def order_state(outcome, status, payment_status):
    order = current_domain.repository_for(Order).get(outcome["result"].value.id)
    assert (order.status, order.payment_status) == (status, payment_status)


@then(parsers.cfparse('a "{stage}" job is queued on the "{lane}" lane'))
def job_queued(outcome, queue, stage, lane):
    jobs = queue.jobs_for_order(outcome["result"].value.id)
    assert [(job.stage, job.lane, job.status) for job in jobs] == [(stage, lane, JobStatus.QUEUED.value)]


@then(parsers.cfparse('"{name}" has {count:d} in stock'))
def product_stock(products, name, count):
    assert current_domain.repository_for(Product).get(products[name]).inventory_count == count


@then(parsers.cfparse('a confirmation email was sent to "{email}"'))
def confirmation_sent(mailbox, email):
    assert [sent["to"] for sent in mailbox.sent_emails] == [email]


@then("no confirmation email was sent")
def no_confirmation(mailbox):
    assert mailbox.sent_emails == []
