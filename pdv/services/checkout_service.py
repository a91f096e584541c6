"""
Checkout workflow: cart, totals and sale submission.

The cart lives in the operator's Flask session (``Cart.to_dict`` /
``Cart.from_dict``); every line keeps a snapshot of the product price,
cost and stock taken when it was added. Two modes share the same cart:

- ``dialog``: manual product selection; the cart clears as soon as the
  sale is persisted.
- ``till``: barcode-driven; the finished sale stays on display for
  ``reset_delay_seconds`` and the cart resets on the next scan or poll.
  Any edit of a completed cart starts a new sale.

States::

    empty -> building -> submitting -> completed
                              \\-> failed -> (building again on the next edit)
"""
import logging
import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Callable, List, Optional, Dict

from pdv.database import utcnow
from pdv.exceptions import (
    PdvError, BusinessLogicError, EmptyCartError, InsufficientStockError, NotFoundError,
)
from pdv.models import normalize_payment_method, PaymentMethod
from pdv.services.result import OperationResult
from pdv.utils.formatters import to_money

logger = logging.getLogger(__name__)

CHECKOUT_MODES = ('dialog', 'till')

STATE_EMPTY = 'empty'
STATE_BUILDING = 'building'
STATE_SUBMITTING = 'submitting'
STATE_COMPLETED = 'completed'
STATE_FAILED = 'failed'


def _new_key() -> str:
    return uuid.uuid4().hex


@dataclass
class CartItem:
    """A cart line with the product snapshot taken when it was added."""
    product_id: int
    name: str
    price: Decimal
    cost: Decimal
    stock_quantity: int
    quantity: int = 1
    barcode: Optional[str] = None

    @classmethod
    def from_product(cls, product, quantity: int = 1) -> 'CartItem':
        return cls(
            product_id=product.id,
            name=product.name,
            price=to_money(product.price),
            cost=to_money(product.cost),
            stock_quantity=int(product.stock_quantity),
            quantity=quantity,
            barcode=product.barcode,
        )

    @property
    def line_total(self) -> Decimal:
        return to_money(self.price * self.quantity)

    @property
    def line_cost(self) -> Decimal:
        return to_money(self.cost * self.quantity)

    def to_dict(self) -> dict:
        rv = asdict(self)
        rv['price'] = str(self.price)
        rv['cost'] = str(self.cost)
        return rv

    @classmethod
    def from_dict(cls, data: dict) -> 'CartItem':
        return cls(
            product_id=int(data['product_id']),
            name=data['name'],
            price=to_money(data['price']),
            cost=to_money(data['cost']),
            stock_quantity=int(data['stock_quantity']),
            quantity=int(data['quantity']),
            barcode=data.get('barcode'),
        )


def calculate_totals(items: List[CartItem]) -> Dict[str, Decimal]:
    """subtotal = Σ price × qty, total_cost = Σ cost × qty, profit = subtotal - total_cost."""
    subtotal = sum((item.line_total for item in items), Decimal('0.00'))
    total_cost = sum((item.line_cost for item in items), Decimal('0.00'))
    return {
        'subtotal': to_money(subtotal),
        'total_cost': to_money(total_cost),
        'profit': to_money(subtotal - total_cost),
    }


@dataclass
class Cart:
    """Checkout session for one operator and one mode."""
    mode: str = 'dialog'
    items: List[CartItem] = field(default_factory=list)
    payment_method: str = PaymentMethod.DINHEIRO.value
    customer_id: Optional[int] = None
    notes: str = ''
    state: str = STATE_EMPTY
    failure_reason: Optional[str] = None
    completed_at: Optional[datetime] = None
    last_sale: Optional[dict] = None
    idempotency_key: str = field(default_factory=_new_key)

    # -----------------------------------------------------
    # Local edits (no data access)
    # -----------------------------------------------------

    def find(self, product_id: int) -> Optional[CartItem]:
        for item in self.items:
            if item.product_id == product_id:
                return item
        return None

    def _ensure_editable(self) -> None:
        """Reject edits while submitting; an edit after completion starts a new sale."""
        if self.state == STATE_SUBMITTING:
            raise BusinessLogicError('A venda está sendo processada. Aguarde.')
        if self.state == STATE_COMPLETED:
            self.reset()

    def _touch(self) -> None:
        self.state = STATE_BUILDING if self.items else STATE_EMPTY
        self.failure_reason = None

    def add_product(self, product) -> CartItem:
        """Add one unit; raises InsufficientStockError when the line would exceed stock."""
        self._ensure_editable()

        stock = int(product.stock_quantity)
        line = self.find(product.id)
        requested = (line.quantity if line else 0) + 1
        if requested > stock:
            raise InsufficientStockError(product.name, requested, stock)

        if line:
            line.quantity = requested
            line.stock_quantity = stock
        else:
            line = CartItem.from_product(product)
            self.items.append(line)
        self._touch()
        return line

    def set_quantity(self, product_id: int, quantity: int) -> Optional[CartItem]:
        """Set a line quantity; 0 removes the line."""
        self._ensure_editable()
        line = self.find(product_id)
        if line is None:
            raise NotFoundError('O produto não está no carrinho.')

        quantity = int(quantity)
        if quantity < 0:
            raise BusinessLogicError('A quantidade não pode ser negativa')
        if quantity == 0:
            self.items.remove(line)
            self._touch()
            return None
        if quantity > line.stock_quantity:
            raise InsufficientStockError(line.name, quantity, line.stock_quantity)

        line.quantity = quantity
        self._touch()
        return line

    def increment(self, product_id: int) -> Optional[CartItem]:
        self._ensure_editable()
        line = self.find(product_id)
        if line is None:
            raise NotFoundError('O produto não está no carrinho.')
        return self.set_quantity(product_id, line.quantity + 1)

    def decrement(self, product_id: int) -> Optional[CartItem]:
        self._ensure_editable()
        line = self.find(product_id)
        if line is None:
            raise NotFoundError('O produto não está no carrinho.')
        return self.set_quantity(product_id, line.quantity - 1)

    def remove(self, product_id: int) -> None:
        self._ensure_editable()
        line = self.find(product_id)
        if line is not None:
            self.items.remove(line)
        self._touch()

    def set_payment_method(self, method: str) -> None:
        self._ensure_editable()
        try:
            self.payment_method = normalize_payment_method(method)
        except ValueError as e:
            raise BusinessLogicError(str(e))

    def set_customer(self, customer_id: Optional[int]) -> None:
        self._ensure_editable()
        self.customer_id = int(customer_id) if customer_id else None

    def set_notes(self, notes: Optional[str]) -> None:
        self._ensure_editable()
        self.notes = (notes or '').strip()

    def reset(self) -> None:
        """Start a new sale. The last finished sale stays available for the receipt."""
        self.items = []
        self.payment_method = PaymentMethod.DINHEIRO.value
        self.customer_id = None
        self.notes = ''
        self.state = STATE_EMPTY
        self.failure_reason = None
        self.completed_at = None
        self.idempotency_key = _new_key()

    # -----------------------------------------------------
    # Derived values
    # -----------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def totals(self) -> Dict[str, Decimal]:
        return calculate_totals(self.items)

    @property
    def last_item(self) -> Optional[CartItem]:
        return self.items[-1] if self.items else None

    @property
    def item_count(self) -> int:
        return sum(item.quantity for item in self.items)

    # -----------------------------------------------------
    # Session storage
    # -----------------------------------------------------

    def to_dict(self) -> dict:
        return {
            'mode': self.mode,
            'items': [item.to_dict() for item in self.items],
            'payment_method': self.payment_method,
            'customer_id': self.customer_id,
            'notes': self.notes,
            'state': self.state,
            'failure_reason': self.failure_reason,
            'completed_at': self.completed_at.isoformat() if self.completed_at else None,
            'last_sale': self.last_sale,
            'idempotency_key': self.idempotency_key,
        }

    @classmethod
    def from_dict(cls, data: Optional[dict], mode: str = 'dialog') -> 'Cart':
        if not data:
            return cls(mode=mode)
        completed_at = data.get('completed_at')
        return cls(
            mode=data.get('mode', mode),
            items=[CartItem.from_dict(i) for i in data.get('items', [])],
            payment_method=data.get('payment_method') or PaymentMethod.DINHEIRO.value,
            customer_id=data.get('customer_id'),
            notes=data.get('notes') or '',
            state=data.get('state', STATE_EMPTY),
            failure_reason=data.get('failure_reason'),
            completed_at=datetime.fromisoformat(completed_at) if completed_at else None,
            last_sale=data.get('last_sale'),
            idempotency_key=data.get('idempotency_key') or _new_key(),
        )

    def to_view(self) -> dict:
        """JSON view of the cart for the checkout endpoints."""
        totals = self.totals
        return {
            'mode': self.mode,
            'state': self.state,
            'items': [
                {**item.to_dict(), 'line_total': str(item.line_total)} for item in self.items
            ],
            'item_count': self.item_count,
            'last_item': self.last_item.to_dict() if self.last_item else None,
            'payment_method': self.payment_method,
            'customer_id': self.customer_id,
            'notes': self.notes,
            'subtotal': str(totals['subtotal']),
            'total_cost': str(totals['total_cost']),
            'profit': str(totals['profit']),
            'failure_reason': self.failure_reason,
            'last_sale': self.last_sale,
        }


class CheckoutService:
    """
    Checkout operations over a ``Cart``. Every operation returns an
    OperationResult; validation failures leave the cart untouched.
    """

    def __init__(self, product_store, sale_store, customer_store, reset_delay_seconds: int = 3,
                 clock: Callable[[], datetime] = utcnow):
        self.product_store = product_store
        self.sale_store = sale_store
        self.customer_store = customer_store
        self.reset_delay = timedelta(seconds=reset_delay_seconds)
        self.clock = clock

    def _local(self, cart: Cart, edit: Callable, error_title: str = 'Não foi possível alterar o carrinho'):
        self.poll(cart)
        try:
            edit()
        except InsufficientStockError as e:
            return OperationResult.failure(e, 'Estoque insuficiente', outcome='insufficient_stock')
        except PdvError as e:
            return OperationResult.failure(e, error_title)
        return OperationResult.success(cart)

    # -----------------------------------------------------
    # Adding products
    # -----------------------------------------------------

    def add_product(self, cart: Cart, product_id: int) -> OperationResult:
        """Manual selection (dialog mode)."""
        result = self.product_store.get_product(product_id)
        if not result.ok:
            return result
        product = result.data
        if not product.active:
            return OperationResult.failure(
                BusinessLogicError(f'O produto {product.name} não está ativo.'),
                'Produto indisponível',
            )
        return self._local(cart, lambda: cart.add_product(product))

    def add_by_barcode(self, cart: Cart, barcode: str) -> OperationResult:
        """
        Till scan. ``not_found`` and ``out_of_stock`` outcomes leave the
        cart unchanged; a scan past the line's stock is rejected too.
        """
        self.poll(cart)
        if cart.state == STATE_COMPLETED:
            cart.reset()

        result = self.product_store.get_product_by_barcode(barcode)
        if not result.ok:
            return result
        return self._local(cart, lambda: cart.add_product(result.data))

    # -----------------------------------------------------
    # Line edits
    # -----------------------------------------------------

    def increment(self, cart: Cart, product_id: int) -> OperationResult:
        return self._local(cart, lambda: cart.increment(product_id))

    def decrement(self, cart: Cart, product_id: int) -> OperationResult:
        return self._local(cart, lambda: cart.decrement(product_id))

    def set_quantity(self, cart: Cart, product_id: int, quantity) -> OperationResult:
        try:
            quantity = int(quantity)
        except (TypeError, ValueError):
            return OperationResult.failure(
                BusinessLogicError('Quantidade inválida'), 'Não foi possível alterar o carrinho',
            )
        return self._local(cart, lambda: cart.set_quantity(product_id, quantity))

    def remove(self, cart: Cart, product_id: int) -> OperationResult:
        return self._local(cart, lambda: cart.remove(product_id))

    def set_payment_method(self, cart: Cart, method: str) -> OperationResult:
        return self._local(cart, lambda: cart.set_payment_method(method))

    def set_customer(self, cart: Cart, customer_id) -> OperationResult:
        """Attach a customer to the sale; an unknown id is rejected before finalize."""
        if customer_id in (None, ''):
            return self._local(cart, lambda: cart.set_customer(None))
        try:
            customer_id = int(customer_id)
        except (TypeError, ValueError):
            return OperationResult.failure(
                BusinessLogicError('Cliente inválido'), 'Não foi possível alterar o carrinho',
            )

        result = self.customer_store.get_customer(customer_id)
        if not result.ok:
            if isinstance(result.error, NotFoundError):
                return OperationResult.failure(
                    BusinessLogicError(f'Cliente {customer_id} não encontrado'),
                    'Não foi possível alterar o carrinho',
                )
            return result
        return self._local(cart, lambda: cart.set_customer(customer_id))

    def set_notes(self, cart: Cart, notes: str) -> OperationResult:
        return self._local(cart, lambda: cart.set_notes(notes))

    # -----------------------------------------------------
    # Submission
    # -----------------------------------------------------

    def finalize(self, cart: Cart, user_id: Optional[int]) -> OperationResult:
        """
        Persist the cart as a sale.

        An empty cart is rejected before any data access. The sale, its
        items and the stock decrements are written in one transaction by
        the sale service; the cart's idempotency key guards against a
        repeated submission of the same cart.
        """
        if cart.state == STATE_SUBMITTING:
            return OperationResult.failure(
                BusinessLogicError('A venda já está sendo processada.'),
                'Erro ao finalizar venda', outcome='in_progress',
            )
        if cart.state == STATE_COMPLETED:
            return OperationResult.failure(
                BusinessLogicError('Esta venda já foi finalizada.'),
                'Erro ao finalizar venda', outcome='already_completed',
            )
        if cart.is_empty:
            return OperationResult.failure(EmptyCartError(), 'Carrinho vazio', outcome='empty_cart')

        totals = cart.totals
        sale_data = {
            'total_amount': totals['subtotal'],
            'total_cost': totals['total_cost'],
            'profit': totals['profit'],
            'payment_method': cart.payment_method,
            'customer_id': cart.customer_id,
            'notes': cart.notes or None,
        }
        items = [
            {
                'product_id': item.product_id,
                'quantity': item.quantity,
                'unit_price': item.price,
                'unit_cost': item.cost,
                'total_price': item.line_total,
                'total_cost': item.line_cost,
            }
            for item in cart.items
        ]

        cart.state = STATE_SUBMITTING
        result = self.sale_store.create_sale(sale_data, items, user_id, cart.idempotency_key)

        if not result.ok:
            cart.state = STATE_FAILED
            cart.failure_reason = result.notification.description
            logger.warning(f"Checkout ({cart.mode}) falhou: {cart.failure_reason}")
            return result

        sale = result.data
        cart.last_sale = sale.to_dict()
        cart.state = STATE_COMPLETED
        cart.completed_at = self.clock()
        logger.info(f"Checkout ({cart.mode}) concluído: venda {sale.id}")

        if cart.mode != 'till':
            cart.reset()
        return result

    def poll(self, cart: Cart) -> Cart:
        """Till mode: reset a completed cart once the display delay has passed."""
        if cart.mode == 'till' and cart.state == STATE_COMPLETED and cart.completed_at:
            if self.clock() - cart.completed_at >= self.reset_delay:
                cart.reset()
        return cart

    def reset(self, cart: Cart) -> OperationResult:
        if cart.state == STATE_SUBMITTING:
            return OperationResult.failure(
                BusinessLogicError('A venda está sendo processada. Aguarde.'),
                'Não foi possível limpar o carrinho',
            )
        cart.reset()
        return OperationResult.success(cart)
