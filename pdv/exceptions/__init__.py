"""Custom exceptions for the PDV application."""
from decimal import Decimal


class PdvError(Exception):
    """Base exception for all application errors."""
    def __init__(self, message="Ocorreu um erro interno", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv['message'] = self.message
        rv['status'] = 'error'
        return rv


class BusinessLogicError(PdvError):
    """Exception raised for business logic violations."""
    def __init__(self, message, status_code=400, payload=None):
        super().__init__(message, status_code, payload)


class EmptyCartError(BusinessLogicError):
    """Raised when a sale is finalized without items."""
    def __init__(self, message="Adicione produtos ao carrinho antes de finalizar a venda."):
        super().__init__(message)


class InsufficientStockError(BusinessLogicError):
    """Raised when an operation fails due to lack of stock."""
    def __init__(self, product_name, requested, available):
        self.product_name = product_name
        self.requested = requested
        self.available = available
        if available is None:
            message = f"Estoque insuficiente para {product_name}"
        elif Decimal(str(available)) <= 0:
            message = f"O produto {product_name} está sem estoque."
        else:
            message = f"Estoque insuficiente para {product_name}: apenas {int(available)} unidades disponíveis."
        super().__init__(message, status_code=409)


class NotFoundError(PdvError):
    """Exception raised when a resource is not found."""
    def __init__(self, message="Registro não encontrado", payload=None):
        super().__init__(message, 404, payload)


class AuthenticationRequiredError(PdvError):
    """Raised when an operation needs an authenticated user."""
    def __init__(self, message="Usuário não autenticado"):
        super().__init__(message, 401)


class UnauthorizedError(PdvError):
    """Raised when a user lacks permission for an action."""
    def __init__(self, message="Acesso não autorizado"):
        super().__init__(message, 403)


class DataAccessError(PdvError):
    """Raised by the data services when the database call fails."""
    def __init__(self, message, payload=None):
        super().__init__(message, 502, payload)
