"""Product store: catalog cache plus barcode lookup for the till."""
from pdv.exceptions import NotFoundError, InsufficientStockError
from pdv.services.result import OperationResult
from pdv.stores.base_store import BaseStore


class ProductStore(BaseStore):

    def load(self, include_inactive: bool = False) -> OperationResult:
        self.loading = True
        try:
            result = self._run(lambda: self.service.get_products(include_inactive),
                               'Erro ao carregar produtos')
        finally:
            self.loading = False
        if result.ok:
            self.items = result.data
        return result

    def get_product(self, product_id: int) -> OperationResult:
        return self._run(lambda: self.service.get_product(product_id), 'Erro ao carregar produto')

    def get_product_by_barcode(self, barcode: str) -> OperationResult:
        """
        Till lookup. Outcomes:
            'not_found'    - no active product has this exact barcode
            'out_of_stock' - product found with stock_quantity == 0
            'ok'           - product returned in ``data``
        """
        result = self._run(lambda: self.service.get_product_by_barcode(barcode),
                           'Erro ao buscar produto')
        if not result.ok:
            return result

        product = result.data
        if product is None:
            return OperationResult.failure(
                NotFoundError(f'Nenhum produto com o código {barcode} foi encontrado.'),
                'Produto não encontrado',
                outcome='not_found',
            )
        if product.stock_quantity <= 0:
            return OperationResult.failure(
                InsufficientStockError(product.name, 1, product.stock_quantity),
                'Estoque insuficiente',
                outcome='out_of_stock',
            )
        return OperationResult.success(product)

    def create_product(self, data: dict) -> OperationResult:
        result = self._run(lambda: self.service.create_product(data), 'Erro ao criar produto',
                           'Produto criado!', 'O produto foi adicionado com sucesso.')
        if result.ok:
            self.items.append(result.data)
        return result

    def update_product(self, product_id: int, data: dict) -> OperationResult:
        result = self._run(lambda: self.service.update_product(product_id, data),
                           'Erro ao atualizar produto',
                           'Produto atualizado!', 'As alterações foram salvas.')
        if result.ok:
            self.items = [result.data if p.id == product_id else p for p in self.items]
        return result

    def delete_product(self, product_id: int) -> OperationResult:
        result = self._run(lambda: self.service.delete_product(product_id),
                           'Erro ao remover produto',
                           'Produto removido!', 'O produto foi excluído com sucesso.')
        if result.ok:
            self.items = [p for p in self.items if p.id != product_id]
        return result

    def update_stock(self, product_id: int, new_quantity) -> OperationResult:
        return self._run(lambda: self.service.update_stock(product_id, new_quantity),
                         'Erro ao atualizar estoque', 'Estoque atualizado!')

    def low_stock(self) -> OperationResult:
        return self._run(self.service.get_low_stock_products, 'Erro ao carregar produtos')
