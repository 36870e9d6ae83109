"""Lookups for the Cart aggregate."""

from protean.utils.globals import current_domain

from checkout.cart.cart import Cart, CartItem
from checkout.domain import checkout


@checkout.repository(part_of=Cart)
class CartRepository:
    def for_session(self, session_id: str) -> Cart | None:
        """The session's cart, or ``None`` if it has not been created yet."""
        records = self._dao.query.filter(session_id=session_id).all().items
        if not records:
            return None
        return self.get(records[0].id)

    def containing_item(self, item_id) -> Cart | None:
        """The cart that owns the line ``item_id``."""
        lines = current_domain.repository_for(CartItem)._dao.query.filter(id=str(item_id)).all().items
        if not lines:
            return None
        return self.get(lines[0].cart_id)
