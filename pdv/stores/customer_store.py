"""Customer store."""
from typing import Optional

from pdv.services.result import OperationResult
from pdv.stores.base_store import BaseStore


class CustomerStore(BaseStore):

    def load(self) -> OperationResult:
        result = self._run(self.service.get_customers, 'Erro ao carregar clientes')
        if result.ok:
            self.items = result.data
        return result

    def get_customer(self, customer_id: int) -> OperationResult:
        return self._run(lambda: self.service.get_customer(customer_id), 'Erro ao carregar cliente')

    def create_customer(self, data: dict, created_by: Optional[int]) -> OperationResult:
        result = self._run(lambda: self.service.create_customer(data, created_by),
                           'Erro ao criar cliente',
                           'Cliente criado!', 'O cliente foi cadastrado com sucesso.')
        if result.ok:
            self.items.append(result.data)
        return result

    def update_customer(self, customer_id: int, data: dict) -> OperationResult:
        result = self._run(lambda: self.service.update_customer(customer_id, data),
                           'Erro ao atualizar cliente',
                           'Cliente atualizado!', 'As alterações foram salvas.')
        if result.ok:
            self.items = [result.data if c.id == customer_id else c for c in self.items]
        return result

    def delete_customer(self, customer_id: int) -> OperationResult:
        result = self._run(lambda: self.service.delete_customer(customer_id),
                           'Erro ao remover cliente',
                           'Cliente removido!', 'O cliente foi excluído com sucesso.')
        if result.ok:
            self.items = [c for c in self.items if c.id != customer_id]
        return result
