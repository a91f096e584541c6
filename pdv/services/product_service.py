"""Product service - catalog CRUD and stock edits."""
import logging
from decimal import Decimal, InvalidOperation
from typing import List, Optional

from sqlalchemy import select

from pdv.models import Product
from pdv.exceptions import BusinessLogicError
from pdv.services.base_service import BaseService
from pdv.utils.formatters import to_money

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'name', 'price', 'cost', 'stock_quantity', 'min_stock_level',
    'barcode', 'description', 'image_url', 'category_id', 'active',
)


def _clean_product_data(data: dict, partial: bool = False) -> dict:
    """Validate and coerce product fields coming from a request payload."""
    cleaned = {}
    for key in EDITABLE_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, str):
            value = value.strip()
        cleaned[key] = value

    if not partial or 'name' in cleaned:
        if not cleaned.get('name'):
            raise BusinessLogicError('O nome do produto é obrigatório')

    for money_field in ('price', 'cost'):
        if money_field in cleaned or not partial:
            raw = cleaned.get(money_field, 0 if money_field == 'cost' else None)
            if raw is None or raw == '':
                if money_field == 'price':
                    raise BusinessLogicError('O preço de venda é obrigatório')
                raw = 0
            try:
                amount = to_money(str(raw).replace(',', '.'))
            except (InvalidOperation, ValueError):
                raise BusinessLogicError(f'Valor inválido para {money_field}')
            if amount < 0:
                raise BusinessLogicError('Valores não podem ser negativos')
            cleaned[money_field] = amount

    for int_field in ('stock_quantity', 'min_stock_level'):
        if int_field in cleaned:
            try:
                cleaned[int_field] = int(cleaned[int_field] or 0)
            except (TypeError, ValueError):
                raise BusinessLogicError(f'Valor inválido para {int_field}')
            if cleaned[int_field] < 0:
                raise BusinessLogicError('Quantidades não podem ser negativas')

    for optional in ('barcode', 'description', 'image_url'):
        if optional in cleaned and not cleaned[optional]:
            cleaned[optional] = None

    if 'active' in cleaned:
        cleaned['active'] = bool(cleaned['active'])
    return cleaned


class ProductService(BaseService):
    """Access to the ``products`` relation."""

    def get_products(self, include_inactive: bool = False) -> List[Product]:
        def query(session):
            stmt = select(Product)
            if not include_inactive:
                stmt = stmt.where(Product.active.is_(True))
            return list(session.scalars(stmt.order_by(Product.name)))
        return self.execute_query(query, 'Buscar produtos')

    def get_product(self, product_id: int) -> Product:
        return self.execute_query(
            lambda session: session.get(Product, product_id),
            'Buscar produto',
            not_found_message=f'Produto {product_id} não encontrado',
        )

    def get_product_by_barcode(self, barcode: str) -> Optional[Product]:
        """Exact barcode match among active products; None when there is no match."""
        code = (barcode or '').strip()
        if not code:
            return None

        def query(session):
            stmt = select(Product).where(
                Product.barcode == code,
                Product.active.is_(True),
            )
            return session.scalars(stmt).first()
        return self.execute_query(query, 'Buscar produto por código')

    def get_low_stock_products(self) -> List[Product]:
        def query(session):
            stmt = (
                select(Product)
                .where(Product.active.is_(True))
                .where(Product.stock_quantity <= Product.min_stock_level)
                .order_by(Product.stock_quantity, Product.name)
            )
            return list(session.scalars(stmt))
        return self.execute_query(query, 'Buscar produtos com estoque baixo')

    def create_product(self, data: dict) -> Product:
        fields = _clean_product_data(data)

        def command(session):
            product = Product(**fields)
            session.add(product)
            session.flush()
            logger.info(f"Produto criado: id={product.id}, nome='{product.name}'")
            return product
        return self.execute_command(command, 'Criar produto')

    def update_product(self, product_id: int, data: dict) -> Product:
        fields = _clean_product_data(data, partial=True)
        product = self.get_product(product_id)

        def command(session):
            for key, value in fields.items():
                setattr(product, key, value)
            session.flush()
            return product
        return self.execute_command(command, 'Atualizar produto')

    def delete_product(self, product_id: int) -> None:
        product = self.get_product(product_id)
        self.execute_command(lambda session: session.delete(product), 'Deletar produto')
        logger.info(f"Produto removido: id={product_id}")

    def update_stock(self, product_id: int, new_quantity) -> Product:
        """Explicit stock edit (inventory count)."""
        try:
            quantity = int(Decimal(str(new_quantity)))
        except (InvalidOperation, ValueError, TypeError):
            raise BusinessLogicError('Quantidade de estoque inválida')
        if quantity < 0:
            raise BusinessLogicError('O estoque não pode ser negativo')

        product = self.get_product(product_id)

        def command(session):
            old_quantity = product.stock_quantity
            product.stock_quantity = quantity
            session.flush()
            logger.info(f"Estoque ajustado: produto={product_id}, {old_quantity} -> {quantity}")
            return product
        return self.execute_command(command, 'Atualizar estoque')
