"""Product model."""
from sqlalchemy import Column, BigInteger, Integer, String, Text, Boolean, Numeric, DateTime, CheckConstraint
from sqlalchemy.sql import func
from pdv.database import Base, BigIntId, utcnow


class Product(Base):
    """Product (item do catálogo)."""

    __tablename__ = 'products'
    __table_args__ = (
        CheckConstraint('stock_quantity >= 0', name='ck_products_stock_non_negative'),
    )

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    price = Column(Numeric(10, 2), nullable=False)
    cost = Column(Numeric(10, 2), nullable=False, default=0, server_default='0.00')
    stock_quantity = Column(Integer, nullable=False, default=0, server_default='0')
    min_stock_level = Column(Integer, nullable=False, default=0, server_default='0')
    barcode = Column(String(64), nullable=True, unique=True)
    description = Column(Text, nullable=True)
    image_url = Column(String(255), nullable=True)
    category_id = Column(BigInteger, nullable=True)
    active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)

    def __repr__(self):
        return f"<Product(id={self.id}, name='{self.name}', barcode='{self.barcode}')>"

    @property
    def is_low_stock(self) -> bool:
        """Stock at or below the reorder threshold."""
        return (self.stock_quantity or 0) <= (self.min_stock_level or 0)

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'price': str(self.price) if self.price is not None else None,
            'cost': str(self.cost) if self.cost is not None else None,
            'stock_quantity': self.stock_quantity,
            'min_stock_level': self.min_stock_level,
            'barcode': self.barcode,
            'description': self.description,
            'image_url': self.image_url,
            'category_id': self.category_id,
            'active': self.active,
        }
