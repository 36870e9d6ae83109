"""FastAPI routes for checkout: cart and order mutations, operator job views.

Handlers are plain functions so FastAPI runs them in its threadpool; the
mutations block on the store lock that worker threads share.
"""

from fastapi import APIRouter, HTTPException, Request

from checkout.api.mutations import MutationResult, add_to_cart, create_order, update_cart_item
from checkout.api.schemas import (
    AddToCartRequest,
    CartItemResponse,
    CartResponse,
    CreateOrderRequest,
    JobResponse,
    OrderItemResponse,
    OrderResponse,
    StatusResponse,
    UpdateCartItemRequest,
    UpdateCartItemResponse,
)
from checkout.jobs.queue import JobQueue


def get_queue(request: Request) -> JobQueue:
    queue = getattr(request.app.state, "job_queue", None)
    if queue is None:
        queue = JobQueue()
        request.app.state.job_queue = queue
    return queue


def _raise_for_errors(result: MutationResult) -> None:
    if not result.ok:
        raise HTTPException(status_code=400, detail=result.errors)


def _cart_item_response(item) -> CartItemResponse:
    return CartItemResponse(id=str(item.id), product_id=str(item.product_id), quantity=item.quantity)


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
cart_router = APIRouter(tags=["carts"])


@cart_router.post("/carts/{session_id}/items", response_model=CartResponse)
def add_cart_item(session_id: str, body: AddToCartRequest) -> CartResponse:
    result = add_to_cart(session_id, body.product_id, body.quantity)
    _raise_for_errors(result)

    cart = result.value
    return CartResponse(
        id=str(cart.id),
        session_id=cart.session_id,
        item_count=cart.item_count,
        items=[_cart_item_response(item) for item in cart.items],
    )


@cart_router.put("/cart-items/{cart_item_id}", response_model=UpdateCartItemResponse)
def change_cart_item(cart_item_id: str, body: UpdateCartItemRequest) -> UpdateCartItemResponse:
    result = update_cart_item(cart_item_id, body.quantity)
    _raise_for_errors(result)

    item = result.value
    return UpdateCartItemResponse(cart_item=_cart_item_response(item) if item is not None else None)


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.post("", status_code=201, response_model=OrderResponse)
def place_order(body: CreateOrderRequest, request: Request) -> OrderResponse:
    result = create_order(body.session_id, body.email, body.payment_method_ref, queue=get_queue(request))
    _raise_for_errors(result)

    order = result.value
    return OrderResponse(
        id=str(order.id),
        email=order.email.address,
        status=order.status,
        payment_status=order.payment_status,
        total_amount=order.total_amount,
        items=[
            OrderItemResponse(
                product_id=str(item.product_id),
                product_name=item.product_name,
                quantity=item.quantity,
                price=item.price,
            )
            for item in order.items
        ],
    )


# ---------------------------------------------------------------------------
# Job Router (operators)
# ---------------------------------------------------------------------------
job_router = APIRouter(prefix="/jobs", tags=["jobs"])


def _job_response(job) -> JobResponse:
    return JobResponse(
        id=str(job.id),
        stage=job.stage,
        lane=job.lane,
        status=job.status,
        order_id=str(job.order_id) if job.order_id else None,
        attempts=job.attempts,
        retry_budget=job.retry_budget,
        last_error=job.last_error,
        enqueued_at=job.enqueued_at,
        claimed_at=job.claimed_at,
        claimed_by=job.claimed_by,
        finished_at=job.finished_at,
    )


@job_router.get("/dead", response_model=list[JobResponse])
def list_dead_jobs(request: Request) -> list[JobResponse]:
    return [_job_response(job) for job in get_queue(request).dead_jobs()]


@job_router.get("/stalled", response_model=list[JobResponse])
def list_stalled_jobs(request: Request) -> list[JobResponse]:
    """Running jobs whose claim is older than the stall timeout."""
    return [_job_response(job) for job in get_queue(request).stalled_jobs()]


@job_router.post("/{job_id}/requeue", response_model=StatusResponse)
def requeue_job(job_id: str, request: Request) -> StatusResponse:
    get_queue(request).requeue(job_id)
    return StatusResponse()


@job_router.delete("/{job_id}", response_model=StatusResponse)
def drop_job(job_id: str, request: Request) -> StatusResponse:
    get_queue(request).drop(job_id)
    return StatusResponse()
