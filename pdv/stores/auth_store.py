"""Auth store: current operator kept in a session mapping (Flask session)."""
from typing import MutableMapping, Optional

from pdv.exceptions import AuthenticationRequiredError
from pdv.services.result import OperationResult
from pdv.stores.base_store import BaseStore

SESSION_USER_KEY = 'user_id'


class AuthStore(BaseStore):

    def __init__(self, service, session_store: MutableMapping):
        super().__init__(service)
        self.session_store = session_store
        self.user = None

    def load(self) -> OperationResult:
        """Resolve the operator of the current session ('check auth')."""
        result = self._run(
            lambda: self.service.get_current_user(self.session_store.get(SESSION_USER_KEY)),
            'Erro de autenticação',
        )
        if not result.ok:
            return result
        self.user = result.data
        if self.user is None:
            self.session_store.pop(SESSION_USER_KEY, None)
            return OperationResult.failure(
                AuthenticationRequiredError(), 'Erro de autenticação',
                'Faça login para continuar.', outcome='unauthenticated',
            )
        return OperationResult.success(self.user)

    def login(self, email: str, password: str) -> OperationResult:
        result = self._run(lambda: self.service.sign_in(email, password), 'Erro no login',
                           'Login realizado!')
        if result.ok:
            self.user = result.data
            self.session_store.clear()
            self.session_store[SESSION_USER_KEY] = self.user.id
        return result

    def logout(self) -> OperationResult:
        user_id: Optional[int] = self.session_store.get(SESSION_USER_KEY)
        result = self._run(lambda: self.service.sign_out(user_id), 'Erro no logout',
                           'Logout realizado', 'Você saiu do sistema.')
        if result.ok:
            self.user = None
            self.session_store.clear()
        return result

    def register(self, email: str, password: str, full_name: Optional[str] = None,
                 role: str = 'vendedor') -> OperationResult:
        return self._run(lambda: self.service.sign_up(email, password, full_name, role),
                         'Erro no cadastro',
                         'Cadastro realizado com sucesso!', 'Agora você já pode fazer login.')
