"""Sale model."""
from sqlalchemy import Column, BigInteger, String, Text, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pdv.database import Base, BigIntId, utcnow
import enum


class PaymentMethod(str, enum.Enum):
    """Payment method enum."""
    DINHEIRO = 'dinheiro'
    CARTAO_CREDITO = 'cartao_credito'
    CARTAO_DEBITO = 'cartao_debito'
    PIX = 'pix'


def normalize_payment_method(value) -> str:
    """
    Normalize payment method value to string for DB storage.

    Args:
        value: Can be None, PaymentMethod enum, or string

    Returns:
        str: one of 'dinheiro', 'cartao_credito', 'cartao_debito', 'pix'

    Raises:
        ValueError: If value is invalid
    """
    # Default to cash if None
    if value is None:
        return PaymentMethod.DINHEIRO.value

    if isinstance(value, PaymentMethod):
        return value.value

    normalized = str(value).lower().strip()
    valid = {m.value for m in PaymentMethod}
    if normalized in valid:
        return normalized
    raise ValueError(f"Forma de pagamento inválida: {value}")


class Sale(Base):
    """Sale (venda finalizada)."""

    __tablename__ = 'sales'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    total_amount = Column(Numeric(10, 2), nullable=False)
    total_cost = Column(Numeric(10, 2), nullable=False)
    profit = Column(Numeric(10, 2), nullable=False)
    payment_method = Column(String(20), nullable=False, default=PaymentMethod.DINHEIRO.value)
    notes = Column(Text, nullable=True)
    customer_id = Column(BigInteger, ForeignKey('customers.id'), nullable=True)
    sold_by = Column(BigInteger, ForeignKey('profiles.id'), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    # Idempotency key to prevent duplicate sales on double-submit
    idempotency_key = Column(String(64), unique=True, nullable=True, index=True)

    # Relationships
    customer = relationship('Customer', back_populates='sales')
    seller = relationship('Profile')
    items = relationship('SaleItem', back_populates='sale', cascade='all, delete-orphan',
                         order_by='SaleItem.id')

    @property
    def sale_number(self) -> str:
        """Display number, e.g. #00042."""
        from pdv.utils.formatters import format_sale_number
        return format_sale_number(self.id)

    def __repr__(self):
        return f"<Sale(id={self.id}, total_amount={self.total_amount}, payment_method={self.payment_method})>"

    def to_dict(self, with_items: bool = True) -> dict:
        data = {
            'id': self.id,
            'sale_number': self.sale_number if self.id is not None else None,
            'total_amount': str(self.total_amount),
            'total_cost': str(self.total_cost),
            'profit': str(self.profit),
            'payment_method': self.payment_method,
            'notes': self.notes,
            'customer_id': self.customer_id,
            'sold_by': self.sold_by,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }
        if with_items:
            data['items'] = [item.to_dict() for item in self.items]
        return data
