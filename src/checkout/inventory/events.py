"""Domain events for the Product aggregate (inventory ledger)."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from checkout.domain import checkout


@checkout.event(part_of="Product")
class ProductRegistered:
    """A product was added to the catalogue with an opening stock count."""

    __version__ = 1

    product_id = Identifier(required=True)
    name = String(required=True)
    price = Float(required=True)
    inventory_count = Integer(required=True)
    registered_at = DateTime(required=True)


@checkout.event(part_of="Product")
class ProductPriceChanged:
    """The unit price of a product changed. Existing orders keep their snapshot."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Float(required=True)
    new_price = Float(required=True)
    changed_at = DateTime(required=True)


@checkout.event(part_of="Product")
class StockDebited:
    """Stock left the ledger for a paid order."""

    __version__ = 1

    product_id = Identifier(required=True)
    order_id = Identifier(required=True)
    quantity = Integer(required=True)
    remaining = Integer(required=True)
    debited_at = DateTime(required=True)


@checkout.event(part_of="Product")
class StockReplenished:
    """An operator added stock to a product."""

    __version__ = 1

    product_id = Identifier(required=True)
    quantity = Integer(required=True)
    new_count = Integer(required=True)
    replenished_at = DateTime(required=True)
