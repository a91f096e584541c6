"""Customer service - CRUD over the ``customers`` relation."""
import logging
from datetime import date
from typing import List, Optional

from sqlalchemy import select

from pdv.models import Customer
from pdv.exceptions import BusinessLogicError, AuthenticationRequiredError
from pdv.services.base_service import BaseService

logger = logging.getLogger(__name__)

CUSTOMER_FIELDS = ('name', 'email', 'phone', 'address', 'cpf', 'birth_date', 'notes')


def _clean_customer_data(data: dict, partial: bool = False) -> dict:
    """Extract and sanitize customer fields."""
    cleaned = {}
    for key in CUSTOMER_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if isinstance(value, str):
            value = value.strip() or None
        cleaned[key] = value

    if not partial or 'name' in cleaned:
        if not cleaned.get('name'):
            raise BusinessLogicError('O nome do cliente é obrigatório')

    birth_date = cleaned.get('birth_date')
    if isinstance(birth_date, str):
        try:
            cleaned['birth_date'] = date.fromisoformat(birth_date)
        except ValueError:
            raise BusinessLogicError('Data de nascimento inválida (use AAAA-MM-DD)')
    return cleaned


class CustomerService(BaseService):
    """Access to the ``customers`` relation."""

    def get_customers(self) -> List[Customer]:
        return self.execute_query(
            lambda session: list(session.scalars(select(Customer).order_by(Customer.name))),
            'Buscar clientes',
        )

    def get_customer(self, customer_id: int) -> Customer:
        return self.execute_query(
            lambda session: session.get(Customer, customer_id),
            'Buscar cliente',
            not_found_message=f'Cliente {customer_id} não encontrado',
        )

    def create_customer(self, data: dict, created_by: Optional[int]) -> Customer:
        if not created_by:
            raise AuthenticationRequiredError()
        fields = _clean_customer_data(data)

        def command(session):
            customer = Customer(created_by=created_by, **fields)
            session.add(customer)
            session.flush()
            logger.info(f"Cliente criado: id={customer.id}, nome='{customer.name}'")
            return customer
        return self.execute_command(command, 'Criar cliente')

    def update_customer(self, customer_id: int, data: dict) -> Customer:
        fields = _clean_customer_data(data, partial=True)
        customer = self.get_customer(customer_id)

        def command(session):
            for key, value in fields.items():
                setattr(customer, key, value)
            session.flush()
            return customer
        return self.execute_command(command, 'Atualizar cliente')

    def delete_customer(self, customer_id: int) -> None:
        customer = self.get_customer(customer_id)
        self.execute_command(lambda session: session.delete(customer), 'Deletar cliente')
