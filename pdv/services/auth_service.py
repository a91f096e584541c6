"""
Authentication service for store operators.

Handles sign-up, credential checks and profile lookup. Session storage is
not handled here: the caller keeps the returned profile id in its session.
"""
import logging
import re
from typing import Optional

from sqlalchemy import select, func

from pdv.models import Profile, UserRole
from pdv.exceptions import BusinessLogicError, AuthenticationRequiredError
from pdv.services.base_service import BaseService

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
MIN_PASSWORD_LENGTH = 6


def is_valid_email(email: str) -> bool:
    """Validate email format."""
    return EMAIL_PATTERN.match(email or '') is not None


class AuthService(BaseService):
    """Operator profiles and credentials."""

    def get_current_user(self, user_id: Optional[int]) -> Optional[Profile]:
        """Profile for the id stored in the session, or None when absent/inactive."""
        if not user_id:
            return None
        return self.execute_query(
            lambda session: session.scalars(
                select(Profile).where(Profile.id == user_id, Profile.active.is_(True))
            ).first(),
            'Carregar usuário',
        )

    def sign_in(self, email: str, password: str) -> Profile:
        normalized = (email or '').strip().lower()
        user = self.execute_query(
            lambda session: session.scalars(
                select(Profile).where(func.lower(Profile.email) == normalized)
            ).first(),
            'Login',
        )
        if not user or not user.active or not user.check_password(password or ''):
            logger.warning(f"Falha de login para {normalized}")
            raise AuthenticationRequiredError('Email ou senha inválidos')

        logger.info(f"Login: user_id={user.id}")
        return user

    def sign_out(self, user_id: Optional[int]) -> None:
        if user_id:
            logger.info(f"Logout: user_id={user_id}")

    def sign_up(self, email: str, password: str, full_name: Optional[str] = None,
                role: str = UserRole.VENDEDOR.value) -> Profile:
        normalized = (email or '').strip().lower()
        errors = []
        if not is_valid_email(normalized):
            errors.append('Email inválido')
        if len(password or '') < MIN_PASSWORD_LENGTH:
            errors.append(f'A senha deve ter pelo menos {MIN_PASSWORD_LENGTH} caracteres')
        if role not in {r.value for r in UserRole}:
            errors.append('Perfil inválido')
        if errors:
            raise BusinessLogicError('; '.join(errors))

        existing = self.execute_query(
            lambda session: session.scalars(
                select(Profile).where(func.lower(Profile.email) == normalized)
            ).first(),
            'Cadastro',
        )
        if existing:
            raise BusinessLogicError('Este email já está cadastrado')

        def command(session):
            user = Profile(
                email=normalized,
                full_name=(full_name or '').strip() or None,
                role=role,
                active=True,
            )
            user.set_password(password)
            session.add(user)
            session.flush()
            logger.info(f"Usuário cadastrado: id={user.id}, role={role}")
            return user
        return self.execute_command(command, 'Cadastro')
