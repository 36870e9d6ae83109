"""Product management: operator commands and handler."""

from protean import handle
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from checkout.domain import checkout
from checkout.inventory.ledger import StockMovement
from checkout.inventory.product import LifecycleStage, Product, ProductCategory


@checkout.command(part_of="Product")
class RegisterProduct:
    name = String(required=True, max_length=200)
    description = Text()
    price = Float(required=True)
    inventory_count = Integer(required=True, min_value=0)
    category = String(required=True, choices=ProductCategory)
    lifecycle_stage = String(choices=LifecycleStage)


@checkout.command(part_of="Product")
class ChangeProductPrice:
    product_id = Identifier(required=True)
    price = Float(required=True)


@checkout.command(part_of="Product")
class RestockProduct:
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@checkout.command_handler(part_of=Product)
class ManageProductHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            name=command.name,
            price=command.price,
            inventory_count=command.inventory_count,
            category=command.category,
            lifecycle_stage=command.lifecycle_stage,
            description=command.description,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ChangeProductPrice)
    def change_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_price(command.price)
        repo.add(product)

    @handle(RestockProduct)
    def restock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.restock(command.quantity)
        repo.add(product)
        current_domain.repository_for(StockMovement).add(StockMovement.restock(product, command.quantity))
        return product.inventory_count
