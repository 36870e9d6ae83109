"""Cart item management: commands and handler.

Both operations read the product's current inventory count and hand it to the
cart, which enforces the bound. Nothing is written when a check fails.
"""

from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Identifier, Integer, String
from protean.utils.globals import current_domain

from checkout.cart.cart import Cart
from checkout.domain import checkout
from checkout.errors import CartItemNotFound, InvalidQuantity, ProductNotFound
from checkout.inventory.product import Product


@checkout.command(part_of="Cart")
class AddToCart:
    session_id = String(required=True, max_length=255)
    product_id = Identifier(required=True)
    quantity = Integer(required=True)


@checkout.command(part_of="Cart")
class UpdateCartItem:
    cart_item_id = Identifier(required=True)
    quantity = Integer(required=True)


def _load_product(product_id) -> Product:
    try:
        return current_domain.repository_for(Product).get(product_id)
    except ObjectNotFoundError:
        raise ProductNotFound(product_id)


@checkout.command_handler(part_of=Cart)
class ManageCartItemsHandler:
    @handle(AddToCart)
    def add_to_cart(self, command):
        """Returns the id of the session's cart."""
        if command.quantity <= 0:
            raise InvalidQuantity()

        product = _load_product(command.product_id)

        repo = current_domain.repository_for(Cart)
        cart = repo.for_session(command.session_id) or Cart.create(command.session_id)
        cart.add_item(
            product_id=str(product.id),
            quantity=command.quantity,
            available=product.inventory_count,
        )
        repo.add(cart)
        return str(cart.id)

    @handle(UpdateCartItem)
    def update_cart_item(self, command):
        """Returns the id of the updated line, or ``None`` if it was removed."""
        repo = current_domain.repository_for(Cart)
        cart = repo.containing_item(command.cart_item_id)
        if cart is None:
            raise CartItemNotFound(command.cart_item_id)

        item = cart.find_item(command.cart_item_id)
        if command.quantity <= 0:
            cart.remove_item(command.cart_item_id)
            repo.add(cart)
            return None

        product = _load_product(item.product_id)
        updated = cart.set_item_quantity(
            command.cart_item_id,
            command.quantity,
            available=product.inventory_count,
        )
        repo.add(cart)
        return str(updated.id)
