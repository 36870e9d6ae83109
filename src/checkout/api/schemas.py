"""Pydantic request/response schemas for the checkout API.

These are external contracts, kept separate from the internal commands.
"""

from datetime import datetime

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------
class AddToCartRequest(BaseModel):
    product_id: str
    quantity: int

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateCartItemRequest(BaseModel):
    quantity: int


class CreateOrderRequest(BaseModel):
    session_id: str
    email: str
    payment_method_ref: str

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "session_id": "sess-4b1c",
                    "email": "customer@example.com",
                    "payment_method_ref": "pm_card_visa",
                }
            ]
        }
    }


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
class CartItemResponse(BaseModel):
    id: str
    product_id: str
    quantity: int


class CartResponse(BaseModel):
    id: str
    session_id: str
    item_count: int
    items: list[CartItemResponse]


class UpdateCartItemResponse(BaseModel):
    cart_item: CartItemResponse | None = None


class OrderItemResponse(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    price: float


class OrderResponse(BaseModel):
    id: str
    email: str
    status: str
    payment_status: str
    total_amount: float
    items: list[OrderItemResponse]


class JobResponse(BaseModel):
    id: str
    stage: str
    lane: str
    status: str
    order_id: str | None = None
    attempts: int
    retry_budget: int
    last_error: str | None = None
    enqueued_at: datetime | None = None
    claimed_at: datetime | None = None
    claimed_by: str | None = None
    finished_at: datetime | None = None


class StatusResponse(BaseModel):
    status: str = "ok"
