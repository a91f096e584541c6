"""
Service container.

Built once by ``create_app`` and stored in ``app.extensions['pdv']``.
Services are shared; stores hold per-request cached rows, so a fresh store
is built for every call.
"""
from flask import current_app

from pdv.database import get_session
from pdv.services.auth_service import AuthService
from pdv.services.customer_service import CustomerService
from pdv.services.product_service import ProductService
from pdv.services.sale_service import SaleService
from pdv.services.checkout_service import CheckoutService
from pdv.services.report_service import ReportService
from pdv.stores.auth_store import AuthStore
from pdv.stores.customer_store import CustomerStore
from pdv.stores.product_store import ProductStore
from pdv.stores.sale_store import SaleStore


class ServiceContainer:

    def __init__(self, config, session_factory=get_session):
        self.config = config
        self.auth_service = AuthService(session_factory)
        self.product_service = ProductService(session_factory)
        self.customer_service = CustomerService(session_factory)
        self.sale_service = SaleService(session_factory)
        self.report_service = ReportService(
            self.sale_service, self.product_service, config.get('APP_TIMEZONE', 'America/Sao_Paulo'),
        )

    def product_store(self) -> ProductStore:
        return ProductStore(self.product_service)

    def customer_store(self) -> CustomerStore:
        return CustomerStore(self.customer_service)

    def sale_store(self) -> SaleStore:
        return SaleStore(self.sale_service)

    def auth_store(self, session_store) -> AuthStore:
        return AuthStore(self.auth_service, session_store)

    def checkout(self) -> CheckoutService:
        return CheckoutService(
            self.product_store(),
            self.sale_store(),
            self.customer_store(),
            reset_delay_seconds=self.config.get('TILL_RESET_DELAY_SECONDS', 3),
        )


def get_container() -> ServiceContainer:
    return current_app.extensions['pdv']
