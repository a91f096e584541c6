"""Sale Item model."""
from sqlalchemy import Column, BigInteger, Integer, Numeric, DateTime, ForeignKey, CheckConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pdv.database import Base, BigIntId, utcnow


class SaleItem(Base):
    """Sale Item (item da venda) - price and cost are snapshots taken at checkout."""

    __tablename__ = 'sale_items'
    __table_args__ = (
        CheckConstraint('quantity >= 1', name='ck_sale_items_quantity_positive'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    sale_id = Column(BigInteger, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False, index=True)
    product_id = Column(BigInteger, ForeignKey('products.id'), nullable=False)
    quantity = Column(Integer, nullable=False)
    unit_price = Column(Numeric(10, 2), nullable=False)
    unit_cost = Column(Numeric(10, 2), nullable=False)
    total_price = Column(Numeric(10, 2), nullable=False)
    total_cost = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    # Relationships
    sale = relationship('Sale', back_populates='items')
    product = relationship('Product')

    def __repr__(self):
        return f"<SaleItem(id={self.id}, product_id={self.product_id}, quantity={self.quantity})>"

    def to_dict(self) -> dict:
        return {
            'product_id': self.product_id,
            'product_name': self.product.name if self.product is not None else None,
            'quantity': self.quantity,
            'unit_price': str(self.unit_price),
            'unit_cost': str(self.unit_cost),
            'total_price': str(self.total_price),
            'total_cost': str(self.total_cost),
        }
