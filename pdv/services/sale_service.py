"""
Sale service with transactional logic.
Handles sale creation (sale + items + stock decrement), listing and
deletion with stock reversal.
"""
import logging
from datetime import datetime, timedelta, time, timezone
from decimal import Decimal
from typing import List, Dict, Optional, Any
from zoneinfo import ZoneInfo

from sqlalchemy import select, update, delete
from sqlalchemy.orm import selectinload

from pdv.models import Product, Sale, SaleItem, normalize_payment_method
from pdv.exceptions import (
    BusinessLogicError, EmptyCartError, InsufficientStockError,
    NotFoundError, AuthenticationRequiredError,
)
from pdv.services.base_service import BaseService
from pdv.utils.formatters import to_money, format_sale_number

logger = logging.getLogger(__name__)

SALE_PERIODS = ('today', 'week', 'month', 'all')


def period_start(period: str, now: datetime, tz_name: str) -> Optional[datetime]:
    """
    Lower bound for the sales list filters, anchored at the start of the
    local day: 'today', 'week' (7 days back), 'month' (30 days back).
    'all' (or anything unknown) has no lower bound.
    """
    local_now = now.astimezone(ZoneInfo(tz_name))
    start_of_day = datetime.combine(local_now.date(), time.min, tzinfo=local_now.tzinfo)
    if period == 'today':
        return start_of_day
    if period == 'week':
        return start_of_day - timedelta(days=7)
    if period == 'month':
        return start_of_day - timedelta(days=30)
    return None


def _as_utc(value: datetime) -> datetime:
    """Bounds are compared in UTC (SQLite stores the UTC wall clock)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _validate_items(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Coerce item rows and check line arithmetic."""
    if not items:
        raise EmptyCartError()

    rows = []
    for item in items:
        quantity = int(item['quantity'])
        if quantity < 1:
            raise BusinessLogicError('A quantidade deve ser maior que zero')
        unit_price = to_money(item['unit_price'])
        unit_cost = to_money(item.get('unit_cost', 0))
        rows.append({
            'product_id': int(item['product_id']),
            'quantity': quantity,
            'unit_price': unit_price,
            'unit_cost': unit_cost,
            'total_price': to_money(item.get('total_price', unit_price * quantity)),
            'total_cost': to_money(item.get('total_cost', unit_cost * quantity)),
        })
    return rows


class SaleService(BaseService):
    """Access to the ``sales`` and ``sale_items`` relations."""

    def get_sales(self, start: Optional[datetime] = None, end: Optional[datetime] = None,
                  payment_method: Optional[str] = None) -> List[Sale]:
        """Sales newest first, with items and product names loaded."""
        def query(session):
            stmt = (
                select(Sale)
                .options(selectinload(Sale.items).selectinload(SaleItem.product))
                .order_by(Sale.created_at.desc(), Sale.id.desc())
            )
            if start is not None:
                stmt = stmt.where(Sale.created_at >= _as_utc(start))
            if end is not None:
                stmt = stmt.where(Sale.created_at <= _as_utc(end))
            if payment_method and payment_method != 'all':
                stmt = stmt.where(Sale.payment_method == normalize_payment_method(payment_method))
            return list(session.scalars(stmt))
        return self.execute_query(query, 'Buscar vendas')

    def get_sales_in_period(self, days: int, now: datetime) -> List[Sale]:
        """Sales whose created_at falls in [now - days, now]."""
        return self.get_sales(start=now - timedelta(days=days), end=now)

    def get_sale(self, sale_id: int) -> Sale:
        def query(session):
            stmt = (
                select(Sale)
                .options(selectinload(Sale.items).selectinload(SaleItem.product))
                .where(Sale.id == sale_id)
            )
            return session.scalars(stmt).first()
        return self.execute_query(
            query, 'Buscar venda',
            not_found_message=f'Venda {format_sale_number(sale_id)} não encontrada',
        )

    def create_sale(self, sale_data: Dict[str, Any], items: List[Dict[str, Any]],
                    sold_by: Optional[int], idempotency_key: Optional[str] = None) -> Sale:
        """
        Persist a finished checkout in a single transaction.

        Steps:
        1. Reject unauthenticated operators and repeated idempotency keys
        2. Insert the sale row with the totals computed at checkout
        3. Insert the sale items referencing the new sale id
        4. Decrement stock for each distinct product, only where the
           current stock covers the quantity
        5. Commit (any failure rolls back steps 2-4)

        Raises:
            AuthenticationRequiredError: no operator
            EmptyCartError: no items
            InsufficientStockError: a conditional decrement matched no row
            DataAccessError: database failure
        """
        if not sold_by:
            raise AuthenticationRequiredError()

        rows = _validate_items(items)
        total_amount = to_money(sale_data['total_amount'])
        total_cost = to_money(sale_data.get('total_cost', 0))
        profit = to_money(sale_data.get('profit', total_amount - total_cost))

        if sum((r['total_price'] for r in rows), Decimal('0.00')) != total_amount:
            raise BusinessLogicError('O total da venda não confere com a soma dos itens')

        try:
            payment_method = normalize_payment_method(sale_data.get('payment_method'))
        except ValueError as e:
            raise BusinessLogicError(str(e))

        def command(session):
            # 1. Idempotency check
            if idempotency_key:
                existing = session.scalars(
                    select(Sale).where(Sale.idempotency_key == idempotency_key)
                ).first()
                if existing:
                    raise BusinessLogicError(
                        f'Esta venda já foi processada ({format_sale_number(existing.id)})'
                    )

            # 2. Create Sale
            sale = Sale(
                total_amount=total_amount,
                total_cost=total_cost,
                profit=profit,
                payment_method=payment_method,
                notes=(sale_data.get('notes') or None),
                customer_id=sale_data.get('customer_id') or None,
                sold_by=sold_by,
                idempotency_key=idempotency_key,
            )
            session.add(sale)
            session.flush()

            # 3. Create SaleItems
            for row in rows:
                session.add(SaleItem(sale_id=sale.id, **row))
            session.flush()

            # 4. Stock decrement per distinct product
            quantities: Dict[int, int] = {}
            for row in rows:
                quantities[row['product_id']] = quantities.get(row['product_id'], 0) + row['quantity']
            for product_id, quantity in quantities.items():
                self._decrement_stock(session, product_id, quantity)

            logger.info(
                f"Venda {format_sale_number(sale.id)} criada: total={total_amount}, "
                f"itens={len(rows)}, estoque={quantities}"
            )
            return sale

        sale = self.execute_command(command, 'Criar venda')
        return self.get_sale(sale.id)

    def delete_sale(self, sale_id: int) -> dict:
        """
        Delete a sale and put its items back in stock (single transaction).

        Steps:
        1. Load the sale and its items
        2. Increment each product's stock by the item quantity
        3. Delete the sale items
        4. Delete the sale

        Returns:
            dict with the sale id and the restored quantities
        """
        sale = self.get_sale(sale_id)
        items = [(item.product_id, item.quantity) for item in sale.items]

        def command(session):
            restored = []
            for product_id, quantity in items:
                result = session.execute(
                    update(Product)
                    .where(Product.id == product_id)
                    .values(stock_quantity=Product.stock_quantity + quantity)
                    .execution_options(synchronize_session=False)
                )
                if result.rowcount == 0:
                    raise NotFoundError(f'Produto {product_id} da venda não encontrado')
                restored.append({'product_id': product_id, 'quantity': quantity})

            session.execute(
                delete(SaleItem)
                .where(SaleItem.sale_id == sale_id)
                .execution_options(synchronize_session=False)
            )
            session.execute(
                delete(Sale)
                .where(Sale.id == sale_id)
                .execution_options(synchronize_session=False)
            )
            return restored

        restored = self.execute_command(command, 'Deletar venda')
        logger.info(f"Venda {format_sale_number(sale_id)} removida, estoque restaurado: {restored}")

        return {
            'success': True,
            'message': f'Venda {format_sale_number(sale_id)} excluída e estoque restaurado',
            'sale_id': sale_id,
            'restored': restored,
        }

    # =====================================================
    # PRIVATE HELPERS
    # =====================================================

    def _decrement_stock(self, session, product_id: int, quantity: int) -> None:
        """Conditional decrement; raises when stock no longer covers the quantity."""
        result = session.execute(
            update(Product)
            .where(Product.id == product_id, Product.stock_quantity >= quantity)
            .values(stock_quantity=Product.stock_quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        product = session.get(Product, product_id)
        if product is None:
            raise NotFoundError(f'Produto {product_id} não encontrado')
        session.refresh(product)
        raise InsufficientStockError(product.name, quantity, product.stock_quantity)


def search_sales(sales: List[Sale], term: Optional[str]) -> List[Sale]:
    """Keep sales whose number or any item's product name contains ``term``."""
    term = (term or '').strip().lower().lstrip('#')
    if not term:
        return sales

    def matches(sale):
        if term in format_sale_number(sale.id).lower() or term == str(sale.id):
            return True
        return any(
            item.product is not None and term in item.product.name.lower()
            for item in sale.items
        )
    return [sale for sale in sales if matches(sale)]
