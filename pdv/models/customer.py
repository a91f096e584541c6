"""Customer model."""
from sqlalchemy import Column, BigInteger, String, Text, Date, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from pdv.database import Base, BigIntId, utcnow


class Customer(Base):
    """Customer (cliente)."""

    __tablename__ = 'customers'

    id = Column(BigIntId, primary_key=True, autoincrement=True)
    name = Column(String(200), nullable=False)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    cpf = Column(String(14), nullable=True)
    birth_date = Column(Date, nullable=True)
    notes = Column(Text, nullable=True)
    created_by = Column(BigInteger, ForeignKey('profiles.id'), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now(), onupdate=utcnow)

    # Relationships
    sales = relationship('Sale', back_populates='customer')

    def __repr__(self):
        return f"<Customer(id={self.id}, name='{self.name}')>"

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'phone': self.phone,
            'address': self.address,
            'cpf': self.cpf,
            'birth_date': self.birth_date.isoformat() if self.birth_date else None,
            'notes': self.notes,
        }
