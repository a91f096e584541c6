"""Sale store: listing, checkout persistence and deletion."""
from datetime import datetime
from typing import Optional

from pdv.exceptions import UnauthorizedError
from pdv.services.result import OperationResult, Notification
from pdv.stores.base_store import BaseStore
from pdv.utils.formatters import format_sale_number


class SaleStore(BaseStore):

    def load(self, start: Optional[datetime] = None, end: Optional[datetime] = None,
             payment_method: Optional[str] = None) -> OperationResult:
        result = self._run(
            lambda: self.service.get_sales(start=start, end=end, payment_method=payment_method),
            'Erro ao carregar vendas',
        )
        if result.ok:
            self.items = result.data
        return result

    def get_sale(self, sale_id: int) -> OperationResult:
        return self._run(lambda: self.service.get_sale(sale_id), 'Erro ao carregar venda')

    def create_sale(self, sale_data: dict, items: list, sold_by: Optional[int],
                    idempotency_key: Optional[str] = None) -> OperationResult:
        result = self._run(
            lambda: self.service.create_sale(sale_data, items, sold_by, idempotency_key),
            'Erro ao finalizar venda',
        )
        if result.ok:
            sale = result.data
            result.notification = Notification(
                'Venda finalizada!',
                f'Venda {format_sale_number(sale.id)} registrada com sucesso.',
            )
            self.items.insert(0, sale)
        return result

    def delete_sale(self, sale_id: int, user=None) -> OperationResult:
        """Only administrators may delete sales (stock is restored)."""
        if user is None or not user.is_admin:
            return OperationResult.failure(
                UnauthorizedError('Apenas administradores podem excluir vendas'),
                'Erro ao excluir venda',
            )
        result = self._run(lambda: self.service.delete_sale(sale_id),
                           'Erro ao excluir venda',
                           'Venda excluída!', 'A venda foi removida e o estoque restaurado.')
        if result.ok:
            self.items = [s for s in self.items if s.id != sale_id]
        return result
