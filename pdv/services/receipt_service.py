"""Printable receipt data for a finished sale or the current cart."""
from datetime import datetime
from typing import Optional

from pdv.utils.formatters import (
    format_currency, format_payment_method, format_sale_number, format_time, format_date, to_local,
)


def _timestamp(moment: datetime, tz_name: str) -> str:
    local = to_local(moment, tz_name)
    return f'{format_time(local)} - {format_date(local)}'


def receipt_from_sale(sale, business_name: str, tz_name: str, operator: Optional[str] = None) -> dict:
    """Receipt context for a persisted sale (items with product names loaded)."""
    return {
        'business_name': business_name,
        'sale_number': format_sale_number(sale.id),
        'timestamp': _timestamp(sale.created_at, tz_name),
        'operator': operator or (sale.seller.full_name if sale.seller is not None else None),
        'payment_method': format_payment_method(sale.payment_method),
        'lines': [
            {
                'name': item.product.name if item.product is not None else f'Produto {item.product_id}',
                'quantity': item.quantity,
                'total': format_currency(item.total_price),
            }
            for item in sale.items
        ],
        'total': format_currency(sale.total_amount),
    }


def receipt_from_cart(cart, business_name: str, tz_name: str, now: datetime,
                      operator: Optional[str] = None) -> dict:
    """Receipt context for the cart currently on screen (nothing persisted)."""
    return {
        'business_name': business_name,
        'sale_number': None,
        'timestamp': _timestamp(now, tz_name),
        'operator': operator,
        'payment_method': format_payment_method(cart.payment_method),
        'lines': [
            {'name': item.name, 'quantity': item.quantity, 'total': format_currency(item.line_total)}
            for item in cart.items
        ],
        'total': format_currency(cart.totals['subtotal']),
    }
