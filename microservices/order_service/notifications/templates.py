"""
Order email templates

Builds the customer confirmation and the admin alert as multipart
(plain text + HTML) messages.
"""

from decimal import Decimal
from email.message import EmailMessage
from html import escape
from typing import List

from ..models import Order, OrderItem

PAYMENT_METHOD_LABELS = {
    "credit_card": "Credit Card",
    "paypal": "PayPal",
    "bank_transfer": "Bank Transfer",
    "cod": "Cash on Delivery",
    "upi": "UPI",
}


def format_money(amount: Decimal) -> str:
    return f"{amount:,.2f}"


def payment_method_label(order: Order) -> str:
    return PAYMENT_METHOD_LABELS.get(order.payment_method.value, order.payment_method.value)


def _item_label(item: OrderItem) -> str:
    return f"{item.name} ({item.variant})" if item.variant else item.name


def _address_lines(order: Order) -> List[str]:
    address = order.shipping_address
    return [
        address.street,
        f"{address.city}, {address.state} {address.zip_code}",
        address.country,
    ]


def _text_items(order: Order) -> List[str]:
    return [
        f"  - {_item_label(item)} x{item.quantity} @ {format_money(item.price)}"
        f" = {format_money(item.line_total)}"
        for item in order.products
    ]


def _text_totals(order: Order) -> List[str]:
    return [
        f"Subtotal:  {format_money(order.subtotal)}",
        f"Tax:       {format_money(order.tax)}",
        f"Shipping:  {format_money(order.shipping_fee)}",
        f"Total:     {format_money(order.total_amount)}",
    ]


def _html_items_table(order: Order) -> str:
    rows = "".join(
        "<tr>"
        f"<td>{escape(_item_label(item))}</td>"
        f"<td style=\"text-align:center\">{item.quantity}</td>"
        f"<td style=\"text-align:right\">{format_money(item.price)}</td>"
        f"<td style=\"text-align:right\">{format_money(item.line_total)}</td>"
        "</tr>"
        for item in order.products
    )
    return (
        "<table cellpadding=\"6\" style=\"border-collapse:collapse;width:100%\">"
        "<thead><tr><th align=\"left\">Product</th><th>Qty</th>"
        "<th align=\"right\">Price</th><th align=\"right\">Line total</th></tr></thead>"
        f"<tbody>{rows}</tbody>"
        "<tfoot>"
        f"<tr><td colspan=\"3\" align=\"right\">Subtotal</td><td align=\"right\">{format_money(order.subtotal)}</td></tr>"
        f"<tr><td colspan=\"3\" align=\"right\">Tax</td><td align=\"right\">{format_money(order.tax)}</td></tr>"
        f"<tr><td colspan=\"3\" align=\"right\">Shipping</td><td align=\"right\">{format_money(order.shipping_fee)}</td></tr>"
        f"<tr><td colspan=\"3\" align=\"right\"><strong>Total</strong></td>"
        f"<td align=\"right\"><strong>{format_money(order.total_amount)}</strong></td></tr>"
        "</tfoot></table>"
    )


def _html_address(order: Order) -> str:
    return "<br>".join(escape(line) for line in _address_lines(order))


def build_customer_email(order: Order, sender: str) -> EmailMessage:
    """Order confirmation sent to the customer"""
    message = EmailMessage()
    message["Subject"] = f"Order Confirmation - {order.order_number}"
    message["From"] = sender
    message["To"] = order.customer_email

    text = "\n".join([
        f"Hi {order.customer_name},",
        "",
        f"Thank you for your order! Your order number is {order.order_number}.",
        "",
        "Items:",
        *_text_items(order),
        "",
        *_text_totals(order),
        "",
        "Shipping to:",
        *(f"  {line}" for line in _address_lines(order)),
        "",
        f"Payment method: {payment_method_label(order)}",
        f"Payment status: {order.payment_status.value}",
        f"Order status:   {order.order_status.value}",
        "",
        "Please keep your order number for any questions about this order.",
    ])
    message.set_content(text)

    html = (
        "<html><body style=\"font-family:Arial,sans-serif\">"
        f"<h2>Thank you for your order, {escape(order.customer_name)}!</h2>"
        f"<p>Your order number is <strong>{escape(order.order_number)}</strong>.</p>"
        f"{_html_items_table(order)}"
        f"<h3>Shipping address</h3><p>{_html_address(order)}</p>"
        "<h3>Payment</h3>"
        f"<p>Method: {escape(payment_method_label(order))}<br>"
        f"Payment status: {escape(order.payment_status.value)}<br>"
        f"Order status: {escape(order.order_status.value)}</p>"
        "</body></html>"
    )
    message.add_alternative(html, subtype="html")
    return message


def build_admin_email(order: Order, sender: str, admin_address: str) -> EmailMessage:
    """New-order alert sent to the administrator"""
    message = EmailMessage()
    message["Subject"] = (
        f"New Order {order.order_number} - {format_money(order.total_amount)} "
        f"from {order.customer_name}"
    )
    message["From"] = sender
    message["To"] = admin_address
    message["Reply-To"] = order.customer_email

    summary = (
        f"{order.item_count} item(s), {format_money(order.total_amount)} via "
        f"{payment_method_label(order)}. Confirm and start processing."
    )

    text = "\n".join([
        f"New order received: {order.order_number}",
        f"Placed at: {order.created_at.isoformat()}",
        "",
        f"Action: {summary}",
        "",
        "Customer:",
        f"  Name:  {order.customer_name}",
        f"  Email: {order.customer_email}",
        f"  Phone: {order.customer_phone}",
        "",
        "Items:",
        *_text_items(order),
        "",
        *_text_totals(order),
        "",
        "Ship to:",
        *(f"  {line}" for line in _address_lines(order)),
        "",
        f"Payment status: {order.payment_status.value}",
        f"Order status:   {order.order_status.value}",
        *([f"Notes: {order.notes}"] if order.notes else []),
    ])
    message.set_content(text)

    notes_html = f"<h3>Notes</h3><p>{escape(order.notes)}</p>" if order.notes else ""
    html = (
        "<html><body style=\"font-family:Arial,sans-serif\">"
        f"<h2>New order {escape(order.order_number)}</h2>"
        f"<p><strong>Action:</strong> {escape(summary)}</p>"
        "<h3>Customer</h3>"
        f"<p>{escape(order.customer_name)}<br>"
        f"<a href=\"mailto:{escape(order.customer_email)}\">{escape(order.customer_email)}</a><br>"
        f"{escape(order.customer_phone)}</p>"
        f"{_html_items_table(order)}"
        f"<h3>Ship to</h3><p>{_html_address(order)}</p>"
        f"<p>Payment status: {escape(order.payment_status.value)}<br>"
        f"Order status: {escape(order.order_status.value)}</p>"
        f"{notes_html}"
        "</body></html>"
    )
    message.add_alternative(html, subtype="html")
    return message
