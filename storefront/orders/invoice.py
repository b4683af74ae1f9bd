"""Printable invoice for a settled order.

Every figure is read from the stored order; nothing is recomputed here.
"""
from html import escape

from storefront.errors import ERROR_INVOICE_UNAVAILABLE, StateError
from storefront.models import Order
from storefront.payments.constants import (
    INVOICEABLE_STATES,
    PAYMENT_METHOD_LABELS,
    TRANSPORT_ZONE_LABELS,
)
from storefront.services.money import format_money

COMPANY_NAME = "GenZsport"
COMPANY_ADDRESS = ("GenZsport, Inc.", "123 Sports Avenue", "Sports City, SC 12345")

_STYLE = """
  body { font-family: Arial, sans-serif; margin: 0; padding: 20px; color: #333; }
  .invoice-box { max-width: 800px; margin: auto; padding: 30px; border: 1px solid #eee; }
  .invoice-box table { width: 100%; text-align: left; border-collapse: collapse; }
  .invoice-box table td { padding: 8px; vertical-align: top; }
  tr.heading td { background: #eee; border-bottom: 1px solid #ddd; font-weight: bold; }
  tr.item td { border-bottom: 1px solid #eee; }
  tr.total td { border-top: 2px solid #eee; font-weight: bold; }
  @media only print { body { -webkit-print-color-adjust: exact; } }
"""


def payment_label(order: Order) -> str:
    return PAYMENT_METHOD_LABELS[order.method]


def transport_zone_label(order: Order) -> str:
    zone = order.transport_zone
    return TRANSPORT_ZONE_LABELS[zone] if zone is not None else "N/A"


def _item_rows(order: Order) -> str:
    rows = []
    for item in order.items:
        rows.append(
            '<tr class="item">'
            f"<td>{escape(item.name)}</td>"
            f"<td>{item.quantity}</td>"
            f"<td>{format_money(item.price)}</td>"
            f"<td>{format_money(item.line_total)}</td>"
            "</tr>"
        )
    return "\n".join(rows)


def render_invoice(order: Order) -> str:
    """
    Build a self-contained HTML invoice.

    Raises:
        StateError: order is not completed or approved
    """
    if order.status not in INVOICEABLE_STATES:
        raise StateError(ERROR_INVOICE_UNAVAILABLE)

    shipping = order.shipping
    fee_row = ""
    if order.transport_fee > 0:
        fee_row = (
            '<tr class="total"><td colspan="3">Transport Fee:</td>'
            f"<td>{format_money(order.transport_fee)}</td></tr>"
        )

    return f"""<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Invoice {escape(order.id)}</title>
<style>{_STYLE}</style>
</head>
<body>
<div class="invoice-box">
<table>
<tr class="top">
<td colspan="2"><h2>{COMPANY_NAME}</h2></td>
<td colspan="2" style="text-align: right;">
Invoice #: {escape(order.id)}<br>
Created: {order.created_at.date().isoformat()}
</td>
</tr>
<tr class="information">
<td colspan="2">{"<br>".join(COMPANY_ADDRESS)}</td>
<td colspan="2" style="text-align: right;">
{escape(shipping.full_name)}<br>
{escape(shipping.address)}<br>
{escape(shipping.phone_number)}
</td>
</tr>
<tr class="heading"><td>Payment Method</td><td colspan="3">{payment_label(order)}</td></tr>
<tr class="details"><td>Delivery Area</td><td colspan="3">{transport_zone_label(order)}</td></tr>
<tr class="heading"><td>Item</td><td>Quantity</td><td>Price</td><td>Total</td></tr>
{_item_rows(order)}
<tr class="total"><td colspan="3">Subtotal:</td><td>{format_money(order.subtotal)}</td></tr>
{fee_row}
<tr class="total"><td colspan="3"><strong>Final Total:</strong></td><td><strong>{format_money(order.final_total)}</strong></td></tr>
</table>
</div>
</body>
</html>
"""
