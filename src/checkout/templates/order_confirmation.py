"""Order confirmation template, sent once payment is captured."""

from checkout.shared.money import format_amount

RULE = "=" * 40


class OrderConfirmationTemplate:
    name = "order_confirmation"

    @staticmethod
    def render(context: dict) -> dict:
        """Render from ``order_id``, ``status``, ``total_amount`` and ``items``.

        Each item is a dict with ``product_name``, ``quantity`` and
        ``line_total``.
        """
        order_id = context.get("order_id", "N/A")
        status = str(context.get("status", "")).replace("_", " ").title()
        items_list = "\n".join(
            f"- {item['product_name']} x{item['quantity']} - {format_amount(item['line_total'])}"
            for item in context.get("items", [])
        )
        return {
            "subject": f"Order Confirmation - Order #{order_id}",
            "body": (
                f"{RULE}\n"
                f"Order Confirmation - Order #{order_id}\n"
                f"{RULE}\n\n"
                "Dear Customer,\n\n"
                "Thank you for your order! Your products are being prepared.\n\n"
                "Order Details:\n"
                f"{items_list}\n\n"
                f"Total: {format_amount(context.get('total_amount', 0))}\n"
                f"Status: {status}\n\n"
                "We'll send you another email when your order ships.\n\n"
                "Questions? Reply to this email or visit our support center.\n"
                f"{RULE}\n"
            ),
        }
