"""Product aggregate, the inventory ledger's unit of stock.

``inventory_count`` is the single source of truth for availability. Carts
only read it. The inventory stage is its only writer on the order path;
operators may also restock.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Integer, String, Text

from checkout.domain import checkout
from checkout.inventory.events import (
    ProductPriceChanged,
    ProductRegistered,
    StockDebited,
    StockReplenished,
)
from checkout.shared.money import has_whole_cents

LOW_STOCK_THRESHOLD = 10


class ProductCategory(Enum):
    SUPPLEMENTS = "Supplements"
    MEAL_PREP = "Meal Prep"
    FITNESS = "Fitness"
    WELLNESS = "Wellness"


class LifecycleStage(Enum):
    STARTING = "starting"
    ACTIVE = "active"
    MAINTENANCE = "maintenance"


@checkout.aggregate
class Product:
    name = String(required=True, min_length=3, max_length=200)
    description = Text()
    price = Float(required=True, min_value=0.01)
    inventory_count = Integer(required=True, min_value=0)
    category = String(required=True, choices=ProductCategory)
    lifecycle_stage = String(choices=LifecycleStage)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def inventory_count_never_negative(self):
        if self.inventory_count is not None and self.inventory_count < 0:
            raise ValidationError({"inventory_count": ["Inventory count cannot be negative"]})

    @invariant.post
    def price_in_whole_cents(self):
        if self.price is not None and not has_whole_cents(self.price):
            raise ValidationError({"price": ["Price must be in whole cents"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def register(cls, name, price, inventory_count, category, lifecycle_stage=None, description=None):
        now = datetime.now(UTC)
        product = cls(
            name=name,
            description=description,
            price=price,
            inventory_count=inventory_count,
            category=category,
            lifecycle_stage=lifecycle_stage,
            created_at=now,
            updated_at=now,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                name=name,
                price=price,
                inventory_count=inventory_count,
                registered_at=now,
            )
        )
        return product

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    def can_supply(self, quantity: int) -> bool:
        return quantity <= self.inventory_count

    def in_stock(self) -> bool:
        return self.inventory_count > 0

    def low_stock(self) -> bool:
        return 0 < self.inventory_count <= LOW_STOCK_THRESHOLD

    # -------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------
    def debit(self, quantity: int, order_id) -> None:
        """Remove stock for a paid order, refusing to go below zero."""
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})
        remaining = self.inventory_count - quantity
        if remaining < 0:
            raise ValidationError(
                {"inventory_count": [f"Insufficient stock: {self.inventory_count} on hand, {quantity} requested"]}
            )

        now = datetime.now(UTC)
        self.inventory_count = remaining
        self.updated_at = now

        self.raise_(
            StockDebited(
                product_id=str(self.id),
                order_id=str(order_id),
                quantity=quantity,
                remaining=remaining,
                debited_at=now,
            )
        )

    def restock(self, quantity: int) -> None:
        if quantity <= 0:
            raise ValidationError({"quantity": ["Quantity must be positive"]})

        now = datetime.now(UTC)
        self.inventory_count = self.inventory_count + quantity
        self.updated_at = now

        self.raise_(
            StockReplenished(
                product_id=str(self.id),
                quantity=quantity,
                new_count=self.inventory_count,
                replenished_at=now,
            )
        )

    def change_price(self, new_price: float) -> None:
        if new_price is None or new_price <= 0:
            raise ValidationError({"price": ["Price must be greater than 0"]})
        if not has_whole_cents(new_price):
            raise ValidationError({"price": ["Price must be in whole cents"]})

        previous = self.price
        now = datetime.now(UTC)
        self.price = new_price
        self.updated_at = now

        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous,
                new_price=new_price,
                changed_at=now,
            )
        )
